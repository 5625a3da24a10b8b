from fastapi import APIRouter, Request

from services.credentials import get_provider_settings

router = APIRouter()

MAX_TOKEN_ALLOWED = 400_000
MAX_COMPLETION_TOKENS = 128_000
API_KEY_LINKS = {"OpenAI": ("https://platform.openai.com/api-keys", "Get OpenAI API Key")}


@router.get("/models")
async def list_models(request: Request):
    """List the models the turn endpoint can serve and which providers are usable."""
    settings = request.app.state.settings
    provider = settings.provider_name
    model_list = [
        {
            "name": settings.default_model,
            "label": settings.default_model,
            "provider": provider,
            "maxTokenAllowed": MAX_TOKEN_ALLOWED,
            "maxCompletionTokens": MAX_COMPLETION_TOKENS,
        }
    ]
    link, label = API_KEY_LINKS.get(provider, (None, None))
    provider_settings = get_provider_settings()
    providers = [
        {
            "name": provider,
            "staticModels": model_list,
            "getApiKeyLink": link,
            "labelForGetApiKey": label,
            "icon": provider,
            "enabled": provider_settings.get(provider, {}).get("enabled", False),
        }
    ]
    return {"modelList": model_list, "providers": providers, "defaultProvider": providers[0]}

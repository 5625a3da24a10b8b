"""Helpers for model identifiers and message render parts."""

from __future__ import annotations

import re
from typing import Iterable, List, Tuple

from models.chat_models import Attachment, FilePart, RenderPart, TextPart

DEFAULT_IMAGE_MIME = "image/jpeg"
_DATA_URL_PREFIX = re.compile(r"^data:image/[^;]+;base64,")


def parse_provider_from_model(model_id: str) -> str:
	"""Return ``OpenAI`` for ``OpenAI:gpt-5``; ids without a provider give ``unknown``."""
	if ":" in model_id:
		return model_id.split(":", 1)[0]
	return "unknown"


def parse_model_name(model_id: str) -> str:
	if ":" in model_id:
		return model_id.split(":", 1)[1]
	return model_id


def image_mime_type(data_url: str) -> str:
	header = data_url.split(";", 1)[0]
	if ":" in header:
		return header.split(":", 1)[1] or DEFAULT_IMAGE_MIME
	return DEFAULT_IMAGE_MIME


def create_message_parts(text: str, images: Iterable[str] = ()) -> List[RenderPart]:
	"""Build a text part followed by one file part per base64 data-URL image."""
	parts: List[RenderPart] = [TextPart(text=text)]
	for image in images:
		parts.append(FilePart(mime_type=image_mime_type(image), data=_DATA_URL_PREFIX.sub("", image)))
	return parts


def image_attachments(images: Iterable[str]) -> Tuple[Attachment, ...]:
	return tuple(
		Attachment(
			name=f"image-{index}",
			mime_type=image_mime_type(image),
			inline_data=_DATA_URL_PREFIX.sub("", image),
		)
		for index, image in enumerate(images, start=1)
	)

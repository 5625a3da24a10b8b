"""Prompt text injected ahead of every assembled conversation."""

from __future__ import annotations

ACKNOWLEDGEMENT = "Understood. I will follow these instructions for all responses."


def system_prompt() -> str:
	"""Return the assistant instruction sent as the first provider turn."""
	return (
		"You are a senior software engineer acting as an interactive coding assistant. "
		"Answer the latest user message using the conversation so far for context. "
		"Prefer concise, correct answers; include complete code blocks when code is requested "
		"and say plainly when you are unsure instead of guessing."
	)


def acknowledgement() -> str:
	"""Return the synthetic model reply that closes the preamble pair."""
	return ACKNOWLEDGEMENT

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

from casebrief.config import Settings

logger = logging.getLogger("casebrief.generation")


class GenerationError(RuntimeError):
    """Raised when a text-generation call fails or yields no usable text."""


class TextGenerator(Protocol):
    async def complete(self, system_instruction: str, user_message: str) -> str:
        ...


class BedrockTextGenerator:
    """Text generation backed by the Bedrock ``converse`` API.

    ``boto3`` is blocking, so each call runs on a worker thread and the event
    loop stays free for other documents while a brief is being written.
    """

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client or self._create_bedrock_client()

    async def complete(self, system_instruction: str, user_message: str) -> str:
        return await asyncio.to_thread(self._converse, system_instruction, user_message)

    def _create_bedrock_client(self) -> Any:
        try:
            import boto3  # type: ignore
        except ImportError as exc:
            raise GenerationError("boto3 is required for the Bedrock text generator.") from exc

        return boto3.client("bedrock-runtime", region_name=self._settings.aws_region)

    def _converse(self, system_instruction: str, user_message: str) -> str:
        model_id = self._settings.bedrock_model_id
        if not model_id:
            raise GenerationError("Bedrock model ID is not configured.")

        started = time.perf_counter()
        try:
            response = self._client.converse(
                modelId=model_id,
                system=[{"text": system_instruction}],
                messages=[{"role": "user", "content": [{"text": user_message}]}],
                inferenceConfig={
                    "temperature": self._settings.generation_temperature,
                    "maxTokens": self._settings.generation_max_tokens,
                },
            )
        except Exception as exc:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.warning(
                "generation_invoke_failed",
                extra={
                    "event": "generation_invoke_failed",
                    "model_id": model_id,
                    "duration_ms": duration_ms,
                    "error": str(exc),
                },
            )
            if "model identifier is invalid" in str(exc).lower():
                raise GenerationError(
                    f"Bedrock rejected model identifier '{model_id}' in region {self._settings.aws_region}."
                ) from exc
            raise GenerationError(f"Bedrock invocation failed for model '{model_id}': {exc}") from exc

        text = self._extract_text(response)
        logger.info(
            "generation_invoke_completed",
            extra={
                "event": "generation_invoke_completed",
                "model_id": model_id,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "system_prompt_chars": len(system_instruction),
                "user_message_chars": len(user_message),
                "response_chars": len(text),
            },
        )
        return text

    @staticmethod
    def _extract_text(response: Any) -> str:
        outputs = response.get("output", {}).get("message", {}).get("content", [])
        parts: list[str] = []
        for item in outputs:
            text = item.get("text")
            if isinstance(text, str) and text.strip():
                parts.append(text)
        return "\n".join(parts).strip()

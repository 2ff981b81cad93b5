from __future__ import annotations

import json
from pathlib import Path
import logging
from typing import Any, Dict, List

import replicate
import yaml

from secondbrain.core.exceptions import ProviderError
from secondbrain.core.settings import Settings, get_settings
from .intent import IngestIntent, QueryIntent, parse_intent
from .llm_client import LLMClient, NO_RESPONSE

INTENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "intent": {"type": "string", "enum": ["ingest", "query"]},
        "title": {"type": ["string", "null"]},
        "text": {"type": ["string", "null"]},
    },
    "required": ["intent", "title", "text"],
    "additionalProperties": False,
}


class LLMClientError(ProviderError):
    """Raised when interaction with LLM fails."""


class ReplicateLLMClient(LLMClient):
    """LLM client powered by Replicate API."""

    def __init__(
        self,
        settings: Settings | None = None,
        prompts_path: str | Path | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(__name__)

        self.answer_model = self.settings.answer_model
        self.classifier_model = self.settings.classifier_model
        self._log_payloads = self.settings.llm_log_payloads
        self._max_completion_tokens = self.settings.llm_max_completion_tokens

        self.prompts_path = (
            Path(prompts_path) if prompts_path is not None else self.settings.prompts_path
        )
        try:
            with self.prompts_path.open("r", encoding="utf-8") as fh:
                self.prompts: Dict[str, Dict[str, str]] = yaml.safe_load(fh) or {}
            self.logger.debug("Prompts loaded from: %s", str(self.prompts_path))
        except FileNotFoundError as exc:
            raise LLMClientError(
                f"Prompts file not found: {self.prompts_path}"
            ) from exc
        except yaml.YAMLError as exc:
            raise LLMClientError("Failed to parse prompts file") from exc

    def _prompt(self, section: str, key: str) -> str:
        try:
            return self.prompts[section][key]
        except KeyError as exc:
            raise LLMClientError(
                f"Prompt '{section}.{key}' not found in {self.prompts_path}"
            ) from exc

    @staticmethod
    async def _output_text(out: Any) -> str:
        """Normalize the various Replicate output shapes into text."""
        if out is None:
            return ""
        if isinstance(out, str):
            return out
        if isinstance(out, dict):
            # Structured models return {"json_output": ...}, others {"text": ...}
            if "json_output" in out:
                jo = out["json_output"]
                return jo if isinstance(jo, str) else json.dumps(jo, ensure_ascii=False)
            if isinstance(out.get("text"), str):
                return out["text"]
            return json.dumps(out, ensure_ascii=False, default=str)
        # Many models stream an iterator of string chunks
        if hasattr(out, "__aiter__"):
            return "".join([str(c) async for c in out])
        return "".join(str(c) for c in out)

    def _build_input(
        self,
        model: str,
        messages: List[Dict[str, str]],
        extra_input: Dict[str, Any] | None,
    ) -> Dict[str, Any]:
        """Map chat messages onto the model's input schema.

        - Structured models take `instructions` (system) plus `input_item_list`
          (user) and a JSON `response_format`.
        - Chat models take `messages` and `max_completion_tokens`.
        """
        payload: Dict[str, Any] = {
            "reasoning_effort": "minimal",
            "verbosity": "low",
        }
        if model.endswith("-structured"):
            instructions = "\n\n".join(
                m["content"] for m in messages if m.get("role") == "system" and m.get("content")
            )
            if instructions:
                payload["instructions"] = instructions
            payload["input_item_list"] = [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": m["content"]}],
                }
                for m in messages
                if m.get("role") == "user" and m.get("content")
            ]
            payload["max_output_tokens"] = self._max_completion_tokens
        else:
            payload["messages"] = messages
            payload["max_completion_tokens"] = self._max_completion_tokens
        if extra_input:
            payload.update(extra_input)
        return payload

    async def _call(
        self,
        model: str,
        messages: List[Dict[str, str]],
        extra_input: Dict[str, Any] | None = None,
    ) -> str:
        input_payload = self._build_input(model, messages, extra_input)
        _lvl = logging.INFO if self._log_payloads else logging.DEBUG
        self.logger.log(
            _lvl,
            "Replicate request | model=%s | input=%s",
            model,
            json.dumps(input_payload, ensure_ascii=False, default=str),
        )
        try:
            out = await replicate.async_run(model, input=input_payload)
            text = await self._output_text(out)
        except Exception as exc:
            self.logger.exception("Replicate request failed: %s", exc)
            raise LLMClientError(f"Replicate request failed: {exc}") from exc
        self.logger.log(_lvl, "Replicate response | model=%s | text=%s", model, text)
        return text

    async def classify_intent(self, text: str) -> IngestIntent | QueryIntent:
        user_prompt = self._prompt("intent", "user").format(input=text)
        content = await self._call(
            self.classifier_model,
            [
                {"role": "system", "content": self._prompt("intent", "system")},
                {"role": "user", "content": user_prompt},
            ],
            extra_input={
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {
                        "name": "intent_classification",
                        "strict": True,
                        "schema": INTENT_SCHEMA,
                    },
                }
            },
        )
        return parse_intent(content)

    async def answer_from_context(self, query: str, context: str) -> str:
        user_prompt = self._prompt("answer", "user").format(query=query, context=context)
        answer = await self._call(
            self.answer_model,
            [
                {"role": "system", "content": self._prompt("answer", "system")},
                {"role": "user", "content": user_prompt},
            ],
        )
        return answer.strip() or NO_RESPONSE


__all__ = ["ReplicateLLMClient", "LLMClientError"]

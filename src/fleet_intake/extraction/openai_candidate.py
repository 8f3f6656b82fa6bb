"""OpenAI-backed candidate extraction for work order text."""

import json
import logging
from typing import Any, Dict, Optional

import openai
from pydantic import ValidationError as PydanticValidationError

from fleet_intake.errors import ExtractionServiceError, ExtractionServiceTimeout
from fleet_intake.schemas.work_order import CandidateWorkOrder, ConfidenceLabel
from fleet_intake.services.openai_client import get_default_model, get_openai_client
from fleet_intake.tenancy.context import TenantScope, require_scope
from fleet_intake.utils.prompt_loader import load_prompt

logger = logging.getLogger(__name__)

PROMPT_NAME = "work_order_extraction"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_INPUT_CHARS = 30000

_ENVELOPE_KEYS = {"value", "confidence"}
_CONFIDENCE_VALUES = {label.value for label in ConfidenceLabel}


def parse_model_json(response_text: Optional[str]) -> Dict[str, Any]:
    """
    Parse a model response into a JSON object.

    Handles markdown code fences and prose around the object by taking the
    text between the first ``{`` and the last ``}``.

    Raises:
        ExtractionServiceError: If the response is empty or not a JSON object
    """
    if not response_text or not response_text.strip():
        raise ExtractionServiceError("Empty response from extraction service")

    text = response_text.strip()
    if "```" in text:
        start = text.find("```")
        newline = text.find("\n", start)
        end = text.rfind("```")
        if newline != -1 and end > newline:
            text = text[newline + 1:end].strip()

    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        raise ExtractionServiceError("Extraction service response contains no JSON object")

    try:
        data = json.loads(text[first:last + 1])
    except json.JSONDecodeError as e:
        logger.debug(f"Raw response: {response_text[:500]}")
        raise ExtractionServiceError(
            f"Failed to parse extraction service response: {e}", original_error=e
        ) from e

    if not isinstance(data, dict):
        raise ExtractionServiceError("Extraction service response is not a JSON object")
    return data


def flatten_envelopes(value: Any) -> Any:
    """Replace ``{"value": x, "confidence": c}`` envelopes with ``x``, recursively."""
    if isinstance(value, dict):
        if "value" in value and set(value) <= _ENVELOPE_KEYS:
            return flatten_envelopes(value["value"])
        return {key: flatten_envelopes(item) for key, item in value.items()}
    if isinstance(value, list):
        return [flatten_envelopes(item) for item in value]
    return value


def _confidence_label(value: Any) -> ConfidenceLabel:
    if isinstance(value, str) and value.strip().lower() in _CONFIDENCE_VALUES:
        return ConfidenceLabel(value.strip().lower())
    return ConfidenceLabel.MEDIUM


def build_candidate(data: Dict[str, Any]) -> CandidateWorkOrder:
    """Map the model's JSON object onto a CandidateWorkOrder."""
    flat = flatten_envelopes(data)

    def section(name: str) -> Dict[str, Any]:
        value = flat.get(name)
        return value if isinstance(value, dict) else {}

    parts = flat.get("parts_listed") or []
    payload = {
        "truck": section("truck"),
        "customer": section("customer"),
        "work_order": section("work_order"),
        "service_categories": section("service_categories"),
        "labor_hours": flat.get("labor_hours"),
        "parts_listed": [part for part in parts if isinstance(part, dict)] if isinstance(parts, list) else [],
        "confidence": _confidence_label(flat.get("extraction_confidence")),
    }

    try:
        return CandidateWorkOrder.model_validate(payload)
    except PydanticValidationError as e:
        raise ExtractionServiceError(
            f"Extraction service returned an unusable structure: {e}", original_error=e
        ) from e


class OpenAICandidateExtractor:
    """Candidate extractor calling an OpenAI chat model in JSON mode.

    The call is bounded by ``timeout`` and never retried automatically.
    """

    def __init__(
        self,
        client=None,
        model: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    ):
        self._client = client
        self.model = model
        self.timeout = timeout
        self.max_input_chars = max_input_chars

    @classmethod
    def from_settings(cls, settings, client=None) -> "OpenAICandidateExtractor":
        return cls(
            client=client,
            model=settings.candidate_model,
            timeout=settings.candidate_timeout_seconds,
            max_input_chars=settings.candidate_max_input_chars,
        )

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = get_openai_client(timeout=self.timeout)
            except ValueError as e:
                raise ExtractionServiceError(str(e), original_error=e) from e
        return self._client

    def extract(
        self,
        raw_text: str,
        scope: TenantScope,
        source_file_name: Optional[str] = None,
    ) -> CandidateWorkOrder:
        """
        Extract a candidate work order from document text.

        Raises:
            NoTenantError: If the scope is empty
            ExtractionServiceTimeout: If the service did not answer in time
            ExtractionServiceError: For any other service or response failure
        """
        scope = require_scope(scope)

        content = raw_text
        if len(content) > self.max_input_chars:
            logger.info(f"Truncating document text from {len(content)} to {self.max_input_chars} chars")
            content = content[: self.max_input_chars]

        prompt = load_prompt(PROMPT_NAME, content=content, source_file_name=source_file_name)
        config = prompt["config"]
        model = self.model or config.get("model") or get_default_model()

        logger.info(f"Requesting candidate extraction (tenant={scope.tenant_id}, model={model})")
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=prompt["messages"],
                temperature=config.get("temperature", 0.1),
                max_tokens=config.get("max_tokens", 6000),
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except openai.APITimeoutError as e:
            logger.warning(f"Candidate extraction timed out after {self.timeout}s")
            raise ExtractionServiceTimeout(
                f"Extraction service timed out after {self.timeout} seconds", original_error=e
            ) from e
        except openai.OpenAIError as e:
            logger.error(f"Candidate extraction failed: {e}")
            raise ExtractionServiceError(f"Extraction service call failed: {e}", original_error=e) from e

        content_text = response.choices[0].message.content if response.choices else None
        candidate = build_candidate(parse_model_json(content_text))
        logger.info(f"Candidate extracted with {candidate.confidence.value} confidence")
        return candidate

# WORKFLOW: Structured-output contract validation (hard gate for oracle payloads).
# Used by: Extraction oracle (schema sent as output format), code extraction orchestrator
# Functions:
# 1. SchemaValidator.schema - The JSON schema requested from the extraction oracle
# 2. parse_extraction_payload() - Validate envelope and items, return typed candidates
# 3. get_validation_errors() - Detailed envelope errors without raising
#
# Validation flow: Oracle JSON -> Envelope schema check -> Per-item schema check -> RawCodeCandidate
# Nothing enters normalization without passing this gate.

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class PayloadParseError(ValueError):
    """Raised when an oracle payload cannot be read as the extraction contract."""


class RawCodeCandidate(BaseModel):
    """One code line as returned by the extraction oracle, before normalization."""
    code_raw: str
    code_10_reconstructed: Optional[str] = None
    label_fr: str
    unit: Optional[str] = None
    droit: Optional[Union[float, str]] = None
    notes: Optional[str] = None
    is_subcode: Optional[bool] = None
    parent_code: Optional[str] = None
    confidence: Optional[float] = None


class SchemaValidator:
    """JSON Schema validator for extraction oracle payloads."""

    def __init__(self):
        self.schema_path = Path(__file__).parent / "extracted_codes.schema.json"
        self.schema = self._load_schema()
        self.envelope_schema = {
            "type": "object",
            "properties": {"codes": {"type": "array"}},
            "required": ["codes"],
        }
        self.item_validator = jsonschema.Draft7Validator(self.schema["properties"]["codes"]["items"])

    def _load_schema(self) -> Dict[str, Any]:
        """Load the JSON schema from file."""
        try:
            with open(self.schema_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Failed to load JSON schema: {e}")
            raise

    def get_validation_errors(self, payload: Any) -> Optional[str]:
        """
        Get envelope validation errors without raising exception.

        Args:
            payload: Decoded oracle payload

        Returns:
            Error message if invalid, None if valid
        """
        try:
            jsonschema.validate(instance=payload, schema=self.envelope_schema)
            return None
        except jsonschema.ValidationError as e:
            return f"Schema validation error: {e.message} at path: {'/'.join(str(p) for p in e.path)}"

    def parse_payload(self, payload: Union[str, bytes, Dict[str, Any]]) -> List[RawCodeCandidate]:
        """
        Validate an oracle payload and return its well-formed items.

        A payload whose envelope is malformed raises PayloadParseError.
        Individual malformed items are dropped and logged.
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise PayloadParseError(f"Oracle returned invalid JSON: {e}")

        error = self.get_validation_errors(payload)
        if error:
            raise PayloadParseError(error)

        candidates = []
        dropped = 0
        for idx, item in enumerate(payload["codes"]):
            item_errors = list(self.item_validator.iter_errors(item))
            if item_errors:
                dropped += 1
                logger.debug(f"Dropping malformed item {idx}: {item_errors[0].message}")
                continue
            try:
                candidates.append(RawCodeCandidate.model_validate(item))
            except ValidationError as e:
                dropped += 1
                logger.debug(f"Dropping item {idx} that failed model validation: {e}")

        if dropped:
            logger.warning(f"Dropped {dropped} malformed item(s) out of {len(payload['codes'])}")

        return candidates


# Global validator instance (read-only after load)
schema_validator = SchemaValidator()


def parse_extraction_payload(payload: Union[str, bytes, Dict[str, Any]]) -> List[RawCodeCandidate]:
    """
    Convenience function to parse an extraction oracle payload.

    Args:
        payload: JSON string or decoded dictionary

    Returns:
        List of RawCodeCandidate, raises PayloadParseError if the envelope is invalid
    """
    return schema_validator.parse_payload(payload)

"""
Normalizer — converts loosely-typed session payloads into canonical records.

Behavioral Contract:
- Pure: never mutates its input, never touches a store
- Accepts camelCase or snake_case keys (camelCase wins when truthy)
- Returns None for payloads without an ``id``
- Fills every optional field with its baseline shape
- Never raises on bad values: an unreadable value (timestamp, number,
  nested config entry) is dropped with a warning and its baseline applies
- Idempotent: normalizing a canonical record yields the same record
"""

from typing import Any, Dict, Mapping, Optional, Set, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from content_builder.models.session import (
    AutoSaveConfig,
    BuilderSession,
    CollaboratorPresence,
    ContentBlock,
    LayoutConfig,
    PreviewSettings,
    PublishReadiness,
    SelectionCriteria,
    ValidationResults,
    WorkflowState,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = structlog.get_logger()

# Fields whose raw value must be a list; anything else falls back to [].
_LIST_FIELDS = {
    "selected_content",
    "content_order",
    "content_blocks",
    "collaboration_data",
    "test_recipients",
}

# List fields holding plain identifiers; items are coerced to str.
_ID_LIST_FIELDS = {"selected_content", "content_order", "test_recipients"}

# Fields whose raw value must be an object; anything else uses the baseline.
_OBJECT_FIELDS = {
    "layout_config",
    "styling_applied",
    "auto_save_config",
    "auto_save_data",
    "preview_settings",
    "validation_results",
    "selection_criteria",
    "template_data",
    "customizations",
    "metadata",
}

# Scalar identifiers stored by some backends as numbers.
_ID_FIELDS = {"session_id", "digest_id", "user_id"}

# Typed sub-records, validated one at a time so a bad entry stays local.
_NESTED_MODELS: Dict[str, Type[BaseModel]] = {
    "layout_config": LayoutConfig,
    "auto_save_config": AutoSaveConfig,
    "preview_settings": PreviewSettings,
    "validation_results": ValidationResults,
    "selection_criteria": SelectionCriteria,
}
_ITEM_MODELS: Dict[str, Type[BaseModel]] = {
    "content_blocks": ContentBlock,
    "collaboration_data": CollaboratorPresence,
}

_STATES = {s.value for s in WorkflowState}
_READINESS = {r.value for r in PublishReadiness}


def _alias(name: str) -> str:
    return BuilderSession.model_fields[name].alias or name


def _snake_names() -> Dict[str, str]:
    """Map every accepted key (camel or snake) to the model's field name."""
    names = {}
    for name in BuilderSession.model_fields:
        names[name] = name
        names[_alias(name)] = name
    return names


def _as_mapping(raw: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(raw, BuilderSession):
        return raw.to_record()
    if isinstance(raw, BaseModel):
        return raw.model_dump(mode="json", by_alias=True)
    if isinstance(raw, Mapping):
        return raw
    return None


def _pick(raw: Mapping[str, Any], name: str) -> Any:
    """Prefer the camelCase key, fall back to snake_case (falsy values fall through)."""
    camel = _alias(name)
    value = raw.get(camel)
    if value:
        return value
    snake_value = raw.get(name)
    if snake_value:
        return snake_value
    # Preserve explicit falsy scalars such as False or 0
    return value if value is not None else snake_value


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _field_keys(model: Type[BaseModel], loc_key: Any) -> Set[Any]:
    """Every key (field name or alias) that feeds the field reported at ``loc_key``."""
    for name, info in model.model_fields.items():
        if loc_key in (name, info.alias):
            return {name, info.alias}
    return {loc_key}


def _validate_lenient(
    model: Type[ModelT], data: Mapping[str, Any], session_id: str, path: str
) -> ModelT:
    """
    Validate ``data``, dropping each key pydantic rejects so its default
    applies. Raises only when a failure cannot be traced to an input key.
    """
    data = dict(data)
    while True:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            failures = {err["loc"][0]: err["type"] for err in e.errors() if err["loc"]}
            dropped = False
            for loc_key, error_type in failures.items():
                for key in _field_keys(model, loc_key) & set(data):
                    logger.warning(
                        "Invalid builder session value dropped",
                        session_id=session_id,
                        field=f"{path}.{key}" if path else key,
                        error=error_type,
                    )
                    del data[key]
                    dropped = True
            if not dropped:
                raise


def normalize_session(raw: Any) -> Optional[BuilderSession]:
    """
    Canonicalize a raw builder-session payload.

    Returns None (the absent result) when the payload is not a record or
    carries no ``id``.
    """
    data = _as_mapping(raw)
    if data is None or not data.get("id"):
        return None

    fields: Dict[str, Any] = {}
    for name in BuilderSession.model_fields:
        value = _pick(data, name)
        if name in _LIST_FIELDS:
            if not isinstance(value, list):
                continue
            if name in _ID_LIST_FIELDS:
                fields[name] = [str(v) for v in value if v is not None]
            else:
                fields[name] = [
                    _validate_lenient(_ITEM_MODELS[name], _plain(v), str(data["id"]), f"{name}[{i}]")
                    for i, v in enumerate(value)
                    if isinstance(v, (Mapping, BaseModel))
                ]
            continue
        # Objects and scalars: missing or falsy means "use the baseline"
        if value is None or (not value and not isinstance(value, bool)):
            continue
        value = _plain(value)
        if name in _OBJECT_FIELDS and not isinstance(value, Mapping):
            continue
        if name in _NESTED_MODELS:
            value = _validate_lenient(_NESTED_MODELS[name], value, str(data["id"]), name)
        elif name in _ID_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (str, int)):
                logger.warning(
                    "Invalid builder session value dropped",
                    session_id=str(data["id"]),
                    field=name,
                    error="identifier_type",
                )
                continue
            value = str(value)
        fields[name] = value

    fields["id"] = str(data["id"])
    fields.setdefault("session_id", fields["id"])

    state = fields.get("current_state")
    if isinstance(state, WorkflowState):
        state = state.value
    if state is not None and (not isinstance(state, str) or state not in _STATES):
        logger.warning(
            "Unknown workflow state coerced to selecting",
            session_id=fields["id"],
            state=state,
        )
        fields.pop("current_state")

    readiness = fields.get("publish_readiness")
    if isinstance(readiness, PublishReadiness):
        readiness = readiness.value
    if readiness is not None and (
        not isinstance(readiness, str) or readiness not in _READINESS
    ):
        logger.warning(
            "Unknown publish readiness coerced to not_ready",
            session_id=fields["id"],
            readiness=readiness,
        )
        fields.pop("publish_readiness")

    return _validate_lenient(BuilderSession, fields, fields["id"], "")


def canonical_fields(partial: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Re-key a partial update onto canonical camelCase record keys.

    Unknown keys are dropped; values are left as given so the merge can
    be normalized as a whole.
    """
    accepted = _snake_names()
    out: Dict[str, Any] = {}
    for key, value in partial.items():
        name = accepted.get(key)
        if name is None:
            continue
        out[_alias(name)] = _plain(value)
    return out

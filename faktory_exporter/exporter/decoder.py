"""Validating decoder for the Faktory ``INFO`` status document.

The document is dynamic JSON. Instead of type assertions scattered through
the collector, the fixed path the exporter depends on is modelled with
strict pydantic models: every field must be present and numeric (strings
and booleans are rejected, nothing is coerced). Unknown keys are ignored.

The first failing field, in declaration order, is reported as a dotted path
on ``DecodeError.field``.
"""

from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

from faktory_exporter.core.exceptions import DecodeError
from faktory_exporter.exporter.stats import Number, Stats

ROOT_FIELD = "document"


def _number(value: Any) -> Number:
    # bool is an int subclass but never a valid count.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {type(value).__name__}")
    return value


# int or float, passed through unchanged.
_Num = Annotated[Any, AfterValidator(_number)]


class _Section(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)


class _ServerSection(_Section):
    command_count: _Num
    connections: _Num


class _RetriesSection(_Section):
    enqueued: _Num
    size: _Num


class _TasksSection(_Section):
    retries: _RetriesSection = Field(alias="Retries")


class _FaktorySection(_Section):
    total_enqueued: _Num
    total_failures: _Num
    total_processed: _Num
    total_queues: _Num
    tasks: _TasksSection
    queues: dict[str, _Num]


class _InfoDocument(_Section):
    server: _ServerSection
    faktory: _FaktorySection


def _field_path(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ROOT_FIELD
    loc = errors[0]["loc"]
    return ".".join(str(part) for part in loc) or ROOT_FIELD


def decode_status(doc: Any) -> Stats:
    """Decode a raw status document into ``Stats``.

    Args:
        doc: The JSON-decoded ``INFO`` reply.

    Returns:
        A fully populated ``Stats``. Partial results are never returned.

    Raises:
        DecodeError: a required field is missing or not numeric. ``field``
            names it, e.g. ``faktory.total_queues`` or
            ``faktory.tasks.Retries``.
    """
    if not isinstance(doc, dict):
        raise DecodeError(ROOT_FIELD, "Status document is not a mapping")

    try:
        info = _InfoDocument.model_validate(doc)
    except ValidationError as e:
        raise DecodeError(_field_path(e)) from e

    return Stats(
        command_count=info.server.command_count,
        connections=info.server.connections,
        total_enqueued=info.faktory.total_enqueued,
        total_failures=info.faktory.total_failures,
        total_processed=info.faktory.total_processed,
        total_queues=info.faktory.total_queues,
        retries_enqueued=info.faktory.tasks.retries.enqueued,
        retries_size=info.faktory.tasks.retries.size,
        queue_sizes=dict(info.faktory.queues),
    )

"""
Pluggable description of a CRUD resource.

A ``ResourceSchema`` is derived from any SQLAlchemy model with a single
primary key. It declares which fields may be filtered, sorted and written, and
coerces client-supplied JSON values to the column's Python type. Nothing in the
translator, store or service knows the concrete field names of a resource.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.inspection import inspect as sa_inspect

from gridcrud.core.errors import ValidationError
from gridcrud.schemas.query import MAX_INT64, MIN_INT64

SYSTEM_FIELDS = {"id", "created_at", "updated_at"}
TIMESTAMP_FIELDS = {"created_at", "updated_at"}


def _bad_value(column_key: str, kind: str) -> ValidationError:
    return ValidationError(
        f'Некорректное значение для поля "{column_key}" ({kind})',
        details={"field": column_key, "expected": kind},
    )


def _coerce_bool(column_key: str, value):
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    raise _bad_value(column_key, "boolean")


def _checked_int(column_key: str, value: int) -> int:
    if value < MIN_INT64 or value > MAX_INT64:
        raise _bad_value(column_key, "64-bit integer")
    return value


def _coerce_number(column_key: str, value, python_type):
    if isinstance(value, bool):
        raise _bad_value(column_key, "number")
    if python_type is int and isinstance(value, int):
        return _checked_int(column_key, value)
    if python_type is int and isinstance(value, float):
        if value.is_integer():
            return _checked_int(column_key, int(value))
        raise _bad_value(column_key, "number")
    if python_type is float and isinstance(value, (int, float)):
        return float(value)
    if python_type is Decimal and isinstance(value, (int, Decimal)):
        return Decimal(value)
    text = str(value).strip()
    if not text:
        raise _bad_value(column_key, "number")
    normalized = text.replace(",", ".")
    try:
        if python_type is int:
            return _checked_int(column_key, int(normalized))
        if python_type is float:
            return float(normalized)
        return Decimal(normalized)
    except (ValueError, TypeError, InvalidOperation):
        raise _bad_value(column_key, "number")


def _coerce_date(column_key: str, value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    if not text:
        raise _bad_value(column_key, "date")
    try:
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise _bad_value(column_key, "date")


def _coerce_datetime(column_key: str, value):
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise _bad_value(column_key, "datetime")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise _bad_value(column_key, "datetime")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: serialize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    return value


def _column_python_type(column) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


@dataclass(frozen=True)
class ResourceSchema:
    name: str
    model: type
    id_field: str
    columns: dict[str, Any] = field(repr=False)
    filterable: frozenset[str]
    sortable: frozenset[str]
    mutable: frozenset[str]
    hidden: frozenset[str] = frozenset()

    @classmethod
    def from_model(
        cls,
        model: type,
        *,
        name: str | None = None,
        hidden: set[str] | None = None,
        filterable: set[str] | None = None,
        sortable: set[str] | None = None,
    ) -> "ResourceSchema":
        mapper = sa_inspect(model)
        pk = mapper.primary_key
        if len(pk) != 1:
            raise ValueError(f"{model.__name__}: only single-column primary keys are supported")
        columns = {column.key: column for column in mapper.columns}
        hidden_fields = frozenset(hidden or ())
        visible = {key for key in columns if key not in hidden_fields}
        return cls(
            name=name or model.__tablename__,
            model=model,
            id_field=pk[0].key,
            columns=columns,
            filterable=frozenset(filterable if filterable is not None else visible),
            sortable=frozenset(sortable if sortable is not None else visible),
            mutable=frozenset(key for key in columns if key not in SYSTEM_FIELDS and key != pk[0].key),
            hidden=hidden_fields,
        )

    @property
    def id_column(self):
        return getattr(self.model, self.id_field)

    def attribute(self, field_name: str):
        return getattr(self.model, field_name)

    def to_dict(self, row: Any) -> dict[str, Any]:
        return {
            key: serialize_value(getattr(row, key))
            for key in self.columns
            if key not in self.hidden
        }

    def coerce(self, field_name: str, value: Any) -> Any:
        column = self.columns[field_name]
        if value is None:
            return None
        if isinstance(value, (dict, list)):
            raise _bad_value(field_name, "scalar")
        python_type = _column_python_type(column)
        if python_type is uuid.UUID:
            if isinstance(value, uuid.UUID):
                return value
            try:
                return uuid.UUID(str(value).strip())
            except ValueError:
                raise _bad_value(field_name, "uuid")
        if python_type is bool:
            return _coerce_bool(field_name, value)
        if python_type in {int, float, Decimal}:
            return _coerce_number(field_name, value, python_type)
        if python_type is date:
            return _coerce_date(field_name, value)
        if python_type is datetime:
            return _coerce_datetime(field_name, value)
        if python_type is str and not isinstance(value, str):
            if isinstance(value, bool):
                raise _bad_value(field_name, "string")
            return str(value)
        return value

    def coerce_id(self, raw: Any) -> Any:
        return self.coerce(self.id_field, raw)

    def sanitize_payload(self, payload: Any, *, is_update: bool) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise ValidationError("Тело запроса должно быть JSON-объектом")

        unknown_fields = sorted(set(payload.keys()) - self.mutable)
        if unknown_fields:
            raise ValidationError(
                "Неизвестные поля: " + ", ".join(unknown_fields),
                details={"fields": unknown_fields},
            )

        cleaned: dict[str, Any] = {}
        for key, value in payload.items():
            column = self.columns[key]
            if value is None and not column.nullable:
                raise ValidationError(f'Поле "{key}" не может быть null', details={"field": key})
            cleaned[key] = self.coerce(key, value)

        if is_update:
            if not cleaned:
                raise ValidationError("Нет полей для обновления")
            return cleaned

        required_missing: list[str] = []
        for name in self.mutable:
            column = self.columns[name]
            if column.nullable:
                continue
            if column.default is not None or column.server_default is not None:
                continue
            if name not in cleaned:
                required_missing.append(name)
        if required_missing:
            missing = sorted(required_missing)
            raise ValidationError(
                "Отсутствуют обязательные поля: " + ", ".join(missing),
                details={"fields": missing},
            )
        return cleaned

    def sanitize_snapshot(self, snapshot: Any, record_id: Any) -> dict[str, Any]:
        """Turn a client's ``previous_data`` into an equality precondition.

        Timestamp fields are dropped; the identifier, when sent, has to agree
        with the addressed record.
        """
        if not isinstance(snapshot, dict) or not snapshot:
            raise ValidationError("previous_data должен быть непустым JSON-объектом")
        unknown_fields = sorted(set(snapshot.keys()) - set(self.columns))
        if unknown_fields:
            raise ValidationError(
                "Неизвестные поля в previous_data: " + ", ".join(unknown_fields),
                details={"fields": unknown_fields},
            )
        precondition: dict[str, Any] = {}
        for key, value in snapshot.items():
            if key in TIMESTAMP_FIELDS or key in self.hidden:
                continue
            if key == self.id_field:
                if self.coerce_id(value) != record_id:
                    raise ValidationError(
                        "previous_data.id не совпадает с идентификатором записи",
                        details={"field": key},
                    )
                continue
            precondition[key] = self.coerce(key, value)
        return precondition

    def coerce_ids(self, raw_ids: Any) -> list[Any]:
        if not isinstance(raw_ids, list) or not raw_ids:
            raise ValidationError("ids должен быть непустым списком", details={"field": "ids"})
        ids: list[Any] = []
        for raw in raw_ids:
            if isinstance(raw, bool) or isinstance(raw, (dict, list)) or raw is None:
                raise _bad_value(self.id_field, "identifier")
            value = self.coerce_id(raw)
            if value not in ids:
                ids.append(value)
        return ids

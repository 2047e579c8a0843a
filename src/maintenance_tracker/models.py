"""Domain models for maintenance activities and spreadsheet imports."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ActivityStatus(str, Enum):
    OPEN = "OPEN"
    NOT_EXECUTED = "NÃO EXECUTADO"
    IN_PROGRESS = "EM PROGRESSO"
    PARTIALLY_EXECUTED = "EXECUTADO PARCIALMENTE"
    CLOSED = "CLOSED"


class Criticality(str, Enum):
    LOW = "baixa"
    NORMAL = "normal"
    HIGH = "alta"
    URGENT = "urgente"

    @classmethod
    def parse(cls, value: Any) -> "Criticality":
        """Map a loosely typed cell to a criticality, defaulting to NORMAL."""
        if value is None:
            return cls.NORMAL
        key = str(value).strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        return cls.NORMAL


class Recurrence(str, Enum):
    DAILY = "Diário"
    WEEKLY = "Semanal"
    BIWEEKLY = "Quinzenal"
    MONTHLY = "Mensal"
    QUARTERLY = "Trimestral"
    SEMIANNUAL = "Semestral"
    NONE = "Não há"


class DateFormat(str, Enum):
    """Layout of a textual date cell."""

    DMY = "DD/MM/AAAA"
    MDY = "MM/DD/AAAA"
    YMD = "AAAA-MM-DD"
    DMON_Y = "DD/MMM/AA"

    @classmethod
    def parse(cls, token: Optional[str]) -> "DateFormat":
        if not token:
            return cls.DMY
        if token == "DD-MM-AAAA":
            return cls.DMY
        try:
            return cls(token)
        except ValueError:
            pass
        try:
            return cls[token.upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown date format: {token!r}") from exc


@dataclass(slots=True)
class Comment:
    id: str
    user: str
    text: str
    timestamp: str

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "user": self.user, "text": self.text, "timestamp": self.timestamp}

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Comment":
        return cls(
            id=str(data.get("id", "")),
            user=str(data.get("user", "")),
            text=str(data.get("text", "")),
            timestamp=str(data.get("timestamp", "")),
        )


@dataclass(slots=True)
class Attachment:
    id: str
    name: str
    type: str
    url: str

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "type": self.type, "url": self.url}

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Attachment":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            type=str(data.get("type", "file")),
            url=str(data.get("url", "")),
        )


@dataclass(slots=True)
class Activity:
    """A single planned maintenance activity."""

    id: str
    start_time: datetime
    end_time: datetime
    duration: str
    description: str = ""
    mp_id: str = ""
    tag: str = ""
    activity_type: str = ""
    recurrence: Recurrence = Recurrence.NONE
    area: str = ""
    workday: str = ""
    shift: str = ""
    company: str = ""
    crew: str = ""
    responsible: str = ""
    supervisor: str = ""
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    electrical_risk: bool = False
    labapet: bool = False
    criticality: Criticality = Criticality.NORMAL
    notes: str = ""
    status: ActivityStatus = ActivityStatus.OPEN
    comments: list[Comment] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    before_images: list[Attachment] = field(default_factory=list)
    after_images: list[Attachment] = field(default_factory=list)

    @property
    def duration_minutes(self) -> int:
        from .timeparse import minutes_from_display

        return minutes_from_display(self.duration)

    def copy(self, **changes: Any) -> "Activity":
        """Return a copy with independent collections."""
        changes.setdefault("comments", list(self.comments))
        changes.setdefault("attachments", list(self.attachments))
        changes.setdefault("before_images", list(self.before_images))
        changes.setdefault("after_images", list(self.after_images))
        return replace(self, **changes)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "idMp": self.mp_id,
            "tag": self.tag,
            "tipo": self.activity_type,
            "periodicidade": self.recurrence.value,
            "area": self.area,
            "descricao": self.description,
            "jornada": self.workday,
            "turno": self.shift,
            "empresa": self.company,
            "efetivo": self.crew,
            "responsavel": self.responsible,
            "supervisor": self.supervisor,
            "horaInicio": _format_timestamp(self.start_time),
            "horaFim": _format_timestamp(self.end_time),
            "horaInicioReal": _format_timestamp(self.actual_start),
            "horaFimReal": _format_timestamp(self.actual_end),
            "duracao": self.duration,
            "r eletrico": self.electrical_risk,
            "labapet": self.labapet,
            "criticidade": self.criticality.value,
            "observacoes": self.notes,
            "status": self.status.value,
            "comments": [comment.to_record() for comment in self.comments],
            "attachments": [item.to_record() for item in self.attachments],
            "beforeImage": [item.to_record() for item in self.before_images],
            "afterImage": [item.to_record() for item in self.after_images],
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Activity":
        start = _parse_timestamp(data.get("horaInicio"))
        end = _parse_timestamp(data.get("horaFim"))
        if start is None or end is None:
            raise ValueError(f"Activity {data.get('id')!r} is missing start or end time")
        return cls(
            id=str(data["id"]),
            mp_id=str(data.get("idMp") or ""),
            tag=str(data.get("tag") or ""),
            activity_type=str(data.get("tipo") or ""),
            recurrence=_enum_or_default(Recurrence, data.get("periodicidade"), Recurrence.NONE),
            area=str(data.get("area") or ""),
            description=str(data.get("descricao") or ""),
            workday=str(data.get("jornada") or ""),
            shift=str(data.get("turno") or ""),
            company=str(data.get("empresa") or ""),
            crew=str(data.get("efetivo") or ""),
            responsible=str(data.get("responsavel") or ""),
            supervisor=str(data.get("supervisor") or ""),
            start_time=start,
            end_time=end,
            actual_start=_parse_timestamp(data.get("horaInicioReal")),
            actual_end=_parse_timestamp(data.get("horaFimReal")),
            duration=str(data.get("duracao") or ""),
            electrical_risk=bool(data.get("r eletrico", False)),
            labapet=bool(data.get("labapet", False)),
            criticality=Criticality.parse(data.get("criticidade")),
            notes=str(data.get("observacoes") or ""),
            status=_enum_or_default(ActivityStatus, data.get("status"), ActivityStatus.OPEN),
            comments=[Comment.from_record(item) for item in data.get("comments") or []],
            attachments=[Attachment.from_record(item) for item in _as_list(data.get("attachments"))],
            before_images=[Attachment.from_record(item) for item in _as_list(data.get("beforeImage"))],
            after_images=[Attachment.from_record(item) for item in _as_list(data.get("afterImage"))],
        )


@dataclass(slots=True)
class ImportMapping:
    """Which spreadsheet header feeds each logical activity field."""

    description: Optional[str] = None
    mp_id: Optional[str] = None
    tag: Optional[str] = None
    responsible: Optional[str] = None
    supervisor: Optional[str] = None
    area: Optional[str] = None
    shift: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[str] = None
    criticality: Optional[str] = None
    responsible_separator: Optional[str] = "/"
    date_format: DateFormat = DateFormat.DMY

    _RECORD_KEYS = (
        ("mp_id", "idMp"),
        ("tag", "tag"),
        ("description", "descricao"),
        ("responsible", "responsavel"),
        ("supervisor", "supervisor"),
        ("area", "area"),
        ("shift", "turno"),
        ("date", "data"),
        ("start_time", "horaInicio"),
        ("end_time", "horaFim"),
        ("duration", "duracao"),
        ("criticality", "criticidade"),
    )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {key: getattr(self, attr) or "" for attr, key in self._RECORD_KEYS}
        record["responsavelSeparator"] = self.responsible_separator or ""
        record["dateFormat"] = self.date_format.value
        return record

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "ImportMapping":
        values: dict[str, Any] = {
            attr: (data.get(key) or None) for attr, key in cls._RECORD_KEYS
        }
        return cls(
            **values,
            responsible_separator=data.get("responsavelSeparator", "/") or None,
            date_format=DateFormat.parse(data.get("dateFormat")),
        )


@dataclass(slots=True)
class ImportBatch:
    """One spreadsheet import, kept so it can be re-edited or deleted."""

    id: str
    created_at: datetime
    count: int
    headers: list[str]
    rows: list[dict[str, Any]]
    mapping: ImportMapping


@dataclass(slots=True)
class AuditEntry:
    id: str
    timestamp: datetime
    user: str
    action: str
    details: str
    entity_id: Optional[str] = None


def _as_list(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _enum_or_default(enum_cls: Any, value: Any, default: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat(timespec="seconds")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed

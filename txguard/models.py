"""Data models for TxGuard."""

import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

from .exceptions import InputError


NETWORKS = ("mainnet", "testnet", "devnet")

FUNCTION_PATH_RE = re.compile(
    r"^(?P<address>0x[0-9a-fA-F]{1,64})::(?P<module>[A-Za-z_][A-Za-z0-9_]*)"
    r"::(?P<function>[A-Za-z_][A-Za-z0-9_]*)(?P<generics><.+>)?$"
)
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


class Severity(str, Enum):
    """Issue severity levels, ordered LOW < MEDIUM < HIGH < CRITICAL."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Case-insensitive lookup, raises ValueError for unknown levels."""
        return cls(str(value).strip().upper())


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class RiskCategory(str, Enum):
    """What kind of harm an issue points at."""
    EXPLOIT = "EXPLOIT"
    RUG_PULL = "RUG_PULL"
    PERMISSION = "PERMISSION"
    EXCESSIVE_COST = "EXCESSIVE_COST"
    OTHER = "OTHER"


def normalize_address(address: str) -> str:
    """Lowercase an address and strip leading zeros, so 0x0001 == 0x1."""
    hex_part = address.strip().lower()
    if hex_part.startswith("0x"):
        hex_part = hex_part[2:]
    return "0x" + (hex_part.lstrip("0") or "0")


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first key present, accepting snake_case or camelCase payloads."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InputError(f"{name} must be an integer, got {value!r}")


@dataclass(frozen=True)
class AbiInfo:
    """ABI metadata for the called function, supplied by an external loader."""
    abilities: tuple[str, ...] = ()
    is_entry: Optional[bool] = None
    is_view: Optional[bool] = None
    param_count: Optional[int] = None
    generic_count: Optional[int] = None
    has_public_mut_ref: Optional[bool] = None
    visibility: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AbiInfo":
        if not isinstance(data, dict):
            raise InputError("abi must be an object")
        abilities = _pick(data, "abilities", default=[]) or []
        if not isinstance(abilities, (list, tuple)):
            raise InputError("abi.abilities must be a list")
        return cls(
            abilities=tuple(str(a).lower() for a in abilities),
            is_entry=_pick(data, "is_entry", "isEntry"),
            is_view=_pick(data, "is_view", "isView"),
            param_count=_optional_int(_pick(data, "param_count", "paramCount"), "abi.paramCount"),
            generic_count=_optional_int(_pick(data, "generic_count", "genericCount"), "abi.genericCount"),
            has_public_mut_ref=_pick(data, "has_public_mut_ref", "hasPublicMutRef"),
            visibility=_pick(data, "visibility"),
        )


@dataclass(frozen=True)
class SimulationEvent:
    """Event emitted during a dry run."""
    type: str
    data: dict = field(default_factory=dict)
    sequence_number: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationEvent":
        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            raise InputError(f"Malformed simulation event: {data!r}")
        return cls(
            type=data["type"],
            data=data.get("data") or {},
            sequence_number=_optional_int(
                _pick(data, "sequence_number", "sequenceNumber"), "event.sequenceNumber"
            ),
        )


@dataclass(frozen=True)
class StateChange:
    """Resource write recorded during a dry run."""
    resource: str
    address: str = ""
    change_type: str = "modify"
    before: Optional[dict] = None
    after: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: dict) -> "StateChange":
        if not isinstance(data, dict) or not isinstance(data.get("resource"), str):
            raise InputError(f"Malformed state change: {data!r}")
        return cls(
            resource=data["resource"],
            address=str(data.get("address", "")),
            change_type=str(_pick(data, "type", "change_type", default="modify")),
            before=data.get("before"),
            after=data.get("after"),
        )


@dataclass(frozen=True)
class SimulationTrace:
    """Output of an external transaction simulation."""
    success: bool
    gas_used: int = 0
    events: tuple[SimulationEvent, ...] = ()
    state_changes: tuple[StateChange, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationTrace":
        if not isinstance(data, dict):
            raise InputError("simulation must be an object")
        events = _pick(data, "events", default=[]) or []
        changes = _pick(data, "state_changes", "stateChanges", default=[]) or []
        if not isinstance(events, list) or not isinstance(changes, list):
            raise InputError("simulation events and stateChanges must be lists")
        return cls(
            success=bool(data.get("success", False)),
            gas_used=_optional_int(_pick(data, "gas_used", "gasUsed", default=0), "gasUsed") or 0,
            events=tuple(SimulationEvent.from_dict(e) for e in events),
            state_changes=tuple(StateChange.from_dict(c) for c in changes),
        )


@dataclass(frozen=True)
class AnalysisContext:
    """Everything known about one proposed transaction."""
    module_address: str
    module_name: str
    function_name: str
    function_path: str
    network: str = "mainnet"
    sender: str = ""
    type_arguments: tuple[str, ...] = ()
    arguments: tuple = ()
    abi: Optional[AbiInfo] = None
    simulation: Optional[SimulationTrace] = None
    comparison_simulation: Optional[SimulationTrace] = None

    @property
    def module_id(self) -> str:
        return f"{self.module_address}::{self.module_name}"

    @property
    def events(self) -> tuple[SimulationEvent, ...]:
        return self.simulation.events if self.simulation else ()

    @property
    def state_changes(self) -> tuple[StateChange, ...]:
        return self.simulation.state_changes if self.simulation else ()

    @classmethod
    def from_request(
        cls,
        function: str,
        type_arguments: Optional[list] = None,
        arguments: Optional[list] = None,
        sender: str = "",
        network: str = "mainnet",
        abi: Optional[dict] = None,
        simulation: Optional[dict] = None,
        comparison_simulation: Optional[dict] = None,
    ) -> "AnalysisContext":
        """Validate raw call data and build a context. Raises InputError."""
        if not isinstance(function, str):
            raise InputError("function must be a string like 0x1::coin::transfer")
        match = FUNCTION_PATH_RE.match(function.strip())
        if not match:
            raise InputError(f"Malformed function path: {function!r}")

        if network not in NETWORKS:
            raise InputError(f"Unknown network {network!r}, expected one of {', '.join(NETWORKS)}")

        if sender and not ADDRESS_RE.match(sender):
            raise InputError(f"Malformed sender address: {sender!r}")

        type_arguments = type_arguments if type_arguments is not None else []
        if not isinstance(type_arguments, list) or not all(isinstance(t, str) for t in type_arguments):
            raise InputError("type_arguments must be a list of type strings")

        arguments = arguments if arguments is not None else []
        if not isinstance(arguments, list):
            raise InputError("arguments must be a list")

        return cls(
            module_address=match.group("address").lower(),
            module_name=match.group("module"),
            function_name=match.group("function"),
            function_path=function.strip(),
            network=network,
            sender=sender.lower(),
            type_arguments=tuple(type_arguments),
            arguments=tuple(arguments),
            abi=AbiInfo.from_dict(abi) if abi is not None else None,
            simulation=SimulationTrace.from_dict(simulation) if simulation is not None else None,
            comparison_simulation=(
                SimulationTrace.from_dict(comparison_simulation)
                if comparison_simulation is not None else None
            ),
        )

    @classmethod
    def from_payload(cls, payload: dict) -> "AnalysisContext":
        """Build a context from a JSON request body."""
        if not isinstance(payload, dict):
            raise InputError("Request must be a JSON object")
        if "function" not in payload:
            raise InputError("Request is missing 'function'")
        return cls.from_request(
            function=payload["function"],
            type_arguments=_pick(payload, "type_arguments", "typeArguments"),
            arguments=_pick(payload, "arguments", "args"),
            sender=_pick(payload, "sender", default="") or "",
            network=_pick(payload, "network", default="mainnet"),
            abi=payload.get("abi"),
            simulation=payload.get("simulation"),
            comparison_simulation=_pick(payload, "comparison_simulation", "comparisonSimulation"),
        )


@dataclass(frozen=True)
class DetectedIssue:
    """One finding from one detector."""
    pattern_id: str
    category: RiskCategory
    severity: Severity
    title: str
    description: str
    recommendation: str
    confidence: float
    source: str
    evidence: dict = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.severity, Severity):
            object.__setattr__(self, "severity", Severity.parse(self.severity))
        if not isinstance(self.category, RiskCategory):
            object.__setattr__(self, "category", RiskCategory(self.category))
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence for {self.pattern_id} out of range: {self.confidence}")


@dataclass(frozen=True)
class RiskVerdict:
    """Final answer for one analysis."""
    overall_severity: Severity
    risk_score: int
    issues: tuple[DetectedIssue, ...] = ()
    skipped_ensemble: bool = False
    detector_failures: tuple[str, ...] = ()
    whitelist_reason: Optional[str] = None
    analysis_time: float = 0.0

    def to_dict(self) -> dict:
        """JSON-friendly representation."""
        data = asdict(self)
        data["overall_severity"] = self.overall_severity.value
        for issue in data["issues"]:
            issue["severity"] = issue["severity"].value
            issue["category"] = issue["category"].value
        return data

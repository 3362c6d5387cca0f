"""Typed rule records produced by the rule file parser.

Transfer rules form a tagged union on `rule_type`:
- `ForcedTransfer` ("add"): insert or replace the edge(s) with a fixed duration.
- `ForcedRemoval` ("remove"): delete the edge(s).
- `DurationOverride` ("override"): change the duration of edge(s) that already exist.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from transit_enrichment.models.enums import ObjectType, RuleDirection


class RuleSource(BaseModel):
    """Where a rule was read from."""

    model_config = ConfigDict(frozen=True)

    path: str
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


class _PairRule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    from_stop_id: str = Field(min_length=1)
    to_stop_id: str = Field(min_length=1)
    direction: RuleDirection = RuleDirection.BOTH
    source: RuleSource | None = None

    def key(self) -> tuple[str, str, str]:
        if self.direction is RuleDirection.ONEWAY:
            return (self.direction.value, self.from_stop_id, self.to_stop_id)
        a, b = sorted((self.from_stop_id, self.to_stop_id))
        return (self.direction.value, a, b)

    def directed_pairs(self) -> list[tuple[str, str]]:
        """Ordered (from, to) pairs the rule acts on; a self pair is listed once."""
        pairs = [(self.from_stop_id, self.to_stop_id)]
        if self.direction is RuleDirection.BOTH and self.from_stop_id != self.to_stop_id:
            pairs.append((self.to_stop_id, self.from_stop_id))
        return pairs

    def describe(self) -> str:
        arrow = "->" if self.direction is RuleDirection.ONEWAY else "<->"
        return f"{self.from_stop_id} {arrow} {self.to_stop_id}"


class ForcedTransfer(_PairRule):
    rule_type: Literal["add"] = "add"
    transfer_time: int = Field(ge=0)


class ForcedRemoval(_PairRule):
    rule_type: Literal["remove"] = "remove"


class DurationOverride(_PairRule):
    rule_type: Literal["override"] = "override"
    transfer_time: int = Field(ge=0)


TransferRule = Annotated[
    Union[ForcedTransfer, ForcedRemoval, DurationOverride],
    Field(discriminator="rule_type"),
]
TRANSFER_RULE_ADAPTER: TypeAdapter[TransferRule] = TypeAdapter(TransferRule)


class CodeRule(BaseModel):
    """Attach `object_code` under `object_system` to one model object."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    object_type: ObjectType
    object_id: str = Field(min_length=1)
    object_system: str = Field(min_length=1)
    object_code: str = Field(min_length=1)
    source: RuleSource | None = None

    def key(self) -> tuple[str, str, str]:
        return (self.object_type.value, self.object_id, self.object_system)


class MalformedLine(BaseModel):
    """A code rule line that could not be parsed; kept so it can be reported."""

    model_config = ConfigDict(frozen=True)

    source: RuleSource
    reason: str
    fields: tuple[str, ...] = ()

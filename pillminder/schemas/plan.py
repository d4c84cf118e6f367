from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from pillminder.reminders.types import Stage, parse_time_of_day


class StageConfig(BaseModel):
    """Stored shape of one stage inside a plan version's JSON"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(None, ge=0, description="Stage id, unique within one plan version")
    name: str = Field(..., min_length=1, description="Stage name, unique within the plan")
    time: str = Field(..., description="Time of day, HH:mm")
    repeat_interval: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("repeatInterval", "interval", "repeat_interval"),
        serialization_alias="repeatInterval",
        description="Minutes between repeats until the next stage; 0 fires once",
    )

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("stage name must not be blank")
        return v

    @field_validator("time")
    @classmethod
    def _validate_time(cls, v: str) -> str:
        minute = parse_time_of_day(v)
        return f"{minute // 60:02d}:{minute % 60:02d}"

    @classmethod
    def from_stage(cls, stage: Stage) -> "StageConfig":
        return cls(id=stage.id, name=stage.name, time=stage.time, repeat_interval=stage.repeat_interval_minutes)

    def to_stage(self) -> Stage:
        if self.id is None:
            raise ValueError(f"stage '{self.name}' has no id")
        return Stage(
            id=self.id,
            name=self.name,
            time_of_day=parse_time_of_day(self.time),
            repeat_interval_minutes=self.repeat_interval,
        )


_stage_list = TypeAdapter(List[StageConfig])


def parse_stage_config(raw: str) -> List[Stage]:
    """Parse a stored plan JSON string. Raises ValueError on malformed data."""
    return [entry.to_stage() for entry in _stage_list.validate_json(raw)]


def dump_stage_config(stages: List[Stage]) -> str:
    return _stage_list.dump_json([StageConfig.from_stage(s) for s in stages], by_alias=True).decode("utf-8")

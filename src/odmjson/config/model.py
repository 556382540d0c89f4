from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from odmjson.projection.projector import DEFAULT_MAX_DEPTH


class Classifier(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    type: str = "mongoose"
    with_: dict[str, Any] = Field(default_factory=dict, alias="with")


class Output(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = "dist/definitions.json"
    by_reference: bool = False


class Config(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = "v1"
    models: list[str] = Field(default_factory=list)
    classifier: Classifier = Field(default_factory=Classifier)
    output: Output = Field(default_factory=Output)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)

    @model_validator(mode="after")
    def _validate_config(self) -> "Config":
        if self.version != "v1":
            raise ValueError("Only version v1 is supported.")
        if not self.models:
            raise ValueError("At least one model document is required.")
        seen: set[str] = set()
        duplicates: set[str] = set()
        for path in self.models:
            if path in seen:
                duplicates.add(path)
            seen.add(path)
        if duplicates:
            dup_list = ", ".join(sorted(duplicates))
            raise ValueError(f"Duplicate model documents: {dup_list}")
        return self

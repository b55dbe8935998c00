"""Data models for the command catalog."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def normalize_keywords(keywords: list[str] | tuple[str, ...]) -> list[str]:
    """Lower-case, strip and de-duplicate search terms, keeping first-seen order."""
    seen: dict[str, None] = {}
    for keyword in keywords:
        term = str(keyword or "").strip().lower()
        if term:
            seen.setdefault(term, None)
    return list(seen)


class Category(str, Enum):
    """Closed set of command kinds; execution dispatch switches on it."""

    APPLICATION = "application"
    SETTINGS_PANE = "settingsPane"
    SYSTEM_BUILTIN = "systemBuiltin"
    EXTENSION_COMMAND = "extensionCommand"
    SCRIPT_COMMAND = "scriptCommand"

    @property
    def needs_target(self) -> bool:
        """Whether records of this category must carry a target path."""
        return self in (Category.APPLICATION, Category.SETTINGS_PANE)


class CommandRecord(BaseModel):
    """A single launchable entry in the catalog."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "app-safari",
                "title": "Safari",
                "subtitle": None,
                "keywords": ["safari"],
                "icon_ref": "data:image/png;base64,iVBORw0KGgo...",
                "category": "application",
                "target_path": "/Applications/Safari.app"
            }
        }
    )

    id: str = Field(description="Identifier, unique within one snapshot")
    title: str = Field(description="Display title")
    subtitle: str | None = Field(default=None, description="Secondary line, e.g. the containing folder")
    keywords: list[str] = Field(default_factory=list, description="Lower-cased search terms")
    icon_ref: str | None = Field(default=None, description="Raster icon as a data URI")
    category: Category = Field(description="Command kind")
    target_path: str | None = Field(
        default=None,
        description="Bundle path for applications, open identifier for settings panes"
    )
    mode: str | None = Field(default=None, description="Run mode supplied by extension/script providers")
    scan_path: str | None = Field(
        default=None,
        exclude=True,
        description="Bundle path used for icon resolution; removed before publication"
    )

    @field_validator("keywords")
    @classmethod
    def _check_keywords(cls, value: list[str]) -> list[str]:
        return normalize_keywords(value)

    @model_validator(mode="after")
    def _check_invariants(self) -> "CommandRecord":
        if self.category.needs_target and not self.target_path:
            raise ValueError(f"{self.category.value} command '{self.id}' requires a target_path")

        title_key = self.title.strip().lower()
        if title_key and title_key not in self.keywords:
            # Frozen model: write through the instance dict during validation
            self.__dict__["keywords"] = [title_key, *self.keywords]
        return self

    def with_keywords(self, *extra: str) -> "CommandRecord":
        """Return a copy with additional (normalised) keywords."""
        return self.model_copy(update={"keywords": normalize_keywords([*self.keywords, *extra])})

    def model_dump_json(self, **kwargs: Any) -> str:
        """Serialize to JSON without unset optional fields."""
        kwargs.setdefault("exclude_none", True)
        return super().model_dump_json(**kwargs)


class CatalogSnapshot(BaseModel):
    """An immutable, ordered catalog produced by one build."""

    model_config = ConfigDict(frozen=True)

    commands: tuple[CommandRecord, ...] = Field(default_factory=tuple)
    built_at: datetime = Field(description="UTC time the snapshot was assembled")

    @classmethod
    def create(cls, commands: list[CommandRecord] | tuple[CommandRecord, ...]) -> "CatalogSnapshot":
        """Create a snapshot stamped with the current time."""
        return cls(commands=tuple(commands), built_at=datetime.now(timezone.utc))

    @classmethod
    def empty(cls) -> "CatalogSnapshot":
        return cls.create(())

    def __len__(self) -> int:
        return len(self.commands)

    def find(self, command_id: str) -> CommandRecord | None:
        """Look up a command by id."""
        for command in self.commands:
            if command.id == command_id:
                return command
        return None

    def by_category(self, category: Category) -> list[CommandRecord]:
        """Get all commands of one category, in catalog order."""
        return [c for c in self.commands if c.category == category]

    def summary(self) -> dict[str, int]:
        """Get counts of commands per category."""
        summary = {category.value: 0 for category in Category}
        for command in self.commands:
            summary[command.category.value] += 1
        return summary

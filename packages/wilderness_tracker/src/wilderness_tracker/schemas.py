"""Pydantic schemas/data contracts for the tracker."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

SPECIAL_TAG = "Special"


class OccurrenceTemplate(BaseModel):
    """One entry of the cyclic catalog, as loaded from the data source."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(ge=0)
    name: str
    location: str = ""
    tags: tuple[str, ...] = ()
    wiki_url: str = Field(default="", alias="wikiUrl")

    @property
    def is_special(self) -> bool:
        return SPECIAL_TAG in self.tags


class Occurrence(OccurrenceTemplate):
    """
    A scheduled instance of a catalog entry with its absolute start time.

    Occurrences are created fresh by the resolver and superseded, never
    edited, on the next resolution.

    Examples:
        >>> template = OccurrenceTemplate(id=0, name="Spider Swarm")
        >>> start = datetime(2024, 2, 5, 7, 0, tzinfo=timezone.utc)
        >>> Occurrence.from_template(template, start).start_time.hour
        7
    """

    start_time: datetime

    @field_validator("start_time")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            msg = "start_time must be timezone-aware"
            raise ValueError(msg)
        return v.astimezone(timezone.utc)

    @classmethod
    def from_template(
        cls, template: OccurrenceTemplate, start_time: datetime
    ) -> "Occurrence":
        return cls(
            id=template.id,
            name=template.name,
            location=template.location,
            tags=template.tags,
            wiki_url=template.wiki_url,
            start_time=start_time,
        )


class Notification(BaseModel):
    """Record of a single fired alert."""

    model_config = ConfigDict(frozen=True)

    trigger: str
    title: str
    message: str
    occurrence_id: int
    sent_at: datetime
    tooltip_shown: bool = False

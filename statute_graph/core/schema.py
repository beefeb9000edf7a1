"""Wire-format models for manifest and dataset documents."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ManifestEntry(BaseModel):
    """One title in the manifest: a single graph file or a split meta file."""
    id: str
    kind: Literal["single", "split"]
    file: str | None = None
    meta: str | None = None
    label: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> str:
        return str(v)

    @model_validator(mode="after")
    def _check_reference(self) -> "ManifestEntry":
        if self.kind == "single" and not self.file:
            raise ValueError(f"single title {self.id} has no file")
        if self.kind == "split" and not self.meta:
            raise ValueError(f"split title {self.id} has no meta file")
        return self


class Manifest(BaseModel):
    """Index mapping title ids to their dataset files."""
    version: int
    titles: list[ManifestEntry] = Field(default_factory=list)

    def find(self, title_id: str) -> ManifestEntry | None:
        for entry in self.titles:
            if entry.id == title_id:
                return entry
        return None


class SplitPart(BaseModel):
    file: str


class SplitMeta(BaseModel):
    """Meta file listing the constituent parts of a split title."""
    parts: list[SplitPart]


class RawNode(BaseModel):
    """Node as stored in a dataset file."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    node_type: str
    time: str | None = None
    source_title: str | None = None
    display_label: str | None = None
    full_name: str | None = None
    text: str | None = None
    definition: str | None = None
    term_type: str | None = None
    title: str | None = None
    subtitle: str | None = None
    part: str | None = None
    chapter: str | None = None
    subchapter: str | None = None
    section: str | None = None
    subsection: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator(
        "id", "source_title", "title", "subtitle", "part", "chapter",
        "subchapter", "section", "subsection", mode="before",
    )
    @classmethod
    def _scalar_as_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("name", mode="before")
    @classmethod
    def _name_default(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_default(cls, v: Any) -> Any:
        return {} if v is None else v


def _endpoint_id(v: Any) -> Any:
    # Endpoints may be a bare id or an embedded node object
    if isinstance(v, dict):
        v = v.get("id")
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class RawLink(BaseModel):
    """Link as stored in a dataset file."""
    model_config = ConfigDict(extra="ignore")

    source: str
    target: str
    edge_type: str | None = None
    action: str | None = None
    time: str | None = None
    source_title: str | None = None
    weight: float | None = None
    definition: str | None = None
    location: str | None = None
    timestamp: str | None = None

    @field_validator("source", "target", mode="before")
    @classmethod
    def _normalize_endpoint(cls, v: Any) -> Any:
        return _endpoint_id(v)

    @field_validator("source_title", mode="before")
    @classmethod
    def _source_title_as_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class RawGraph(BaseModel):
    """A single dataset file or one part of a split title."""
    nodes: list[RawNode] = Field(default_factory=list)
    links: list[RawLink] = Field(default_factory=list)

    @field_validator("nodes", "links", mode="before")
    @classmethod
    def _missing_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

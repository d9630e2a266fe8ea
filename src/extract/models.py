"""Data models for structured extraction results."""

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)


class Theme(_Record):
    """A recurring theme noticed in the day."""

    title: str
    description: str


class Quote(_Record):
    """A quoted line and who said it."""

    text: str
    speaker: str


class KnowledgeNugget(_Record):
    """A fact learned during the day."""

    fact: str
    category: str | None = None
    source: str | None = None


class DialogueLine(_Record):
    """One line of a memorable exchange."""

    text: str
    speaker: str | None = None


class MemorableExchange(_Record):
    """A short dialogue plus the attribution line that closed it."""

    dialogue: list[DialogueLine]
    context: str | None = None


class StructuredRecord(_Record):
    """Everything extracted from one insight document.

    Field order matches the order in which the engine resolves them.
    """

    action_items: list[str] = Field(default_factory=list)
    decisions: list[str] = Field(default_factory=list)
    ideas: list[str] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)
    quotes: list[Quote] = Field(default_factory=list)
    themes: list[Theme] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    knowledge_nuggets: list[KnowledgeNugget] = Field(default_factory=list)
    memorable_exchanges: list[MemorableExchange] = Field(default_factory=list)


class RecordSchemaError(Exception):
    """The assembled record does not match the StructuredRecord schema.

    This indicates a bug in a field extractor, not bad input.
    """

    pass


def validate_record(fields: dict) -> StructuredRecord:
    """Validate assembled extraction output against the record schema.

    Args:
        fields: Mapping of record field name to extracted values

    Returns:
        Validated, immutable StructuredRecord

    Raises:
        RecordSchemaError: If any field has the wrong shape
    """
    try:
        return StructuredRecord.model_validate(fields)
    except ValidationError as e:
        raise RecordSchemaError(f"Extraction produced an invalid record: {e}") from e

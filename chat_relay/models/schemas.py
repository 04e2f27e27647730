from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Speaker of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationTurn(BaseModel):
    """A single turn in the conversation.

    Attributes:
        role: The speaker (user, assistant, or system).
        content: The message text.
    """

    role: Role
    content: str

    def render(self) -> str:
        """Render as a ``"<role>: <content>"`` prompt line."""
        return f"{self.role.value}: {self.content}"


class ChatRequest(BaseModel):
    """Request payload for the relay's generation mode.

    Attributes:
        messages: The conversation so far, oldest first. The relay routes an
            empty list to the models query, so it never reaches this model.
        grounding_text: Optional document text to ground the answer in.
        model: Optional model override for this exchange.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ConversationTurn]
    grounding_text: str | None = Field(
        None,
        validation_alias=AliasChoices("groundingText", "pdfContent", "grounding_text"),
        serialization_alias="groundingText",
    )
    model: str | None = None

    @field_validator("model", mode="before")
    @classmethod
    def blank_model_is_default(cls, v: str | None) -> str | None:
        """Treat an empty model string as "use the configured default"."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class GenerationRequest(BaseModel):
    """Body of a streaming ``/api/generate`` call to Ollama."""

    model: str
    prompt: str
    stream: bool = True


class TokenEvent(BaseModel):
    """One decoded NDJSON line from the backend's generation stream.

    Extra backend fields (timings, context, ...) are kept so the event can
    be forwarded verbatim.

    Attributes:
        response: The generated text fragment.
        done: Whether this event terminates the stream.
    """

    model_config = ConfigDict(extra="allow")

    response: str = ""
    done: bool = False


class AssembledMessage(BaseModel):
    """Assistant message assembled from streamed fragments.

    Attributes:
        role: Always assistant.
        content: Concatenation of every fragment received so far.
    """

    role: Role = Role.ASSISTANT
    content: str = ""

    def as_turn(self) -> ConversationTurn:
        return ConversationTurn(role=self.role, content=self.content)


class ModelsResponse(BaseModel):
    """Response of the relay's model-listing mode."""

    models: list[str] = Field(default_factory=list)


class PDFUploadResponse(BaseModel):
    """Response after PDF upload processing.

    Attributes:
        content: Text extracted from the document.
        filename: Name of the uploaded file.
        pages: Number of pages in the document.
    """

    content: str
    filename: str | None = None
    pages: int = Field(0, ge=0)


class ErrorResponse(BaseModel):
    """JSON body of every error response."""

    error: str

"""Data models for LLM providers."""

from pydantic import BaseModel, ConfigDict, Field


class CompletionResult(BaseModel):
    """Raw text returned by a provider plus usage metadata."""

    text: str = Field(..., description="Model output text")
    model_used: str = Field(..., description="Identifier of the LLM model used")
    provider: str = Field(..., description="LLM provider name (gemini, anthropic, openai, zhipu)")
    input_tokens: int = Field(default=0, description="Input tokens used")
    output_tokens: int = Field(default=0, description="Output tokens used")
    cost: float = Field(default=0.0, description="Estimated cost in USD")
    processing_time: float = Field(default=0.0, description="Processing time in seconds")

    model_config = ConfigDict(
        protected_namespaces=(),
        json_schema_extra={
            "example": {
                "text": '{"fileContent": "...", "messages": {"hero.title": "Hello World"}}',
                "model_used": "gemini-2.5-flash",
                "provider": "gemini",
                "input_tokens": 1000,
                "output_tokens": 250,
                "cost": 0.0009,
                "processing_time": 2.3,
            }
        },
    )

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens

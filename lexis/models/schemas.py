"""Pydantic schemas exchanged between pipeline steps and external services."""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StringHitType(str, Enum):
    """Syntax node kind a hardcoded string was found in."""

    JSX_TEXT = "JSXText"
    JSX_ATTRIBUTE = "JSXAttribute"
    STRING_LITERAL = "StringLiteral"


class StringHit(BaseModel):
    """A translatable literal detected by the scan step."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    value: str
    line: int = Field(..., description="1-based source line")
    column: int = Field(..., description="0-based source column")
    type: StringHitType
    attribute_name: Optional[str] = Field(default=None, alias="attributeName")

    def describe(self) -> str:
        """Render as ``line:column [Type:attr] "value"`` for prompts."""
        kind = self.type.value
        if self.attribute_name:
            kind = f"{kind}:{self.attribute_name}"
        return f'{self.line}:{self.column} [{kind}] "{self.value}"'


class TransformResponse(BaseModel):
    """Payload the code-rewriting service returns for one file."""

    model_config = ConfigDict(populate_by_name=True)

    file_content: str = Field(..., alias="fileContent")
    messages: Dict[str, str] = Field(default_factory=dict)


class DetectedFramework(BaseModel):
    """Framework detected from a repository's manifest and layout."""

    name: str
    version: Optional[str] = None
    type: Optional[str] = None  # e.g. app-router, pages-router, nuxt3, vite
    supported: bool = False
    support_level: str = "not-supported"  # full, coming-soon, not-supported
    icon: Optional[str] = None


class FrameworkSupport(BaseModel):
    """Whether a detected framework can proceed through the pipeline."""

    framework: DetectedFramework
    can_proceed: bool
    message: Optional[str] = None

"""Test doubles and file helpers shared by the test modules."""

from pathlib import Path

from lexis.llm.base import BaseLLMProvider
from lexis.llm.models import CompletionResult

NEXT_PACKAGE_JSON = '{"name": "site", "dependencies": {"next": "14.2.0", "react": "18.2.0"}}'


class FakeLLM(BaseLLMProvider):
    """Provider returning queued responses in call order."""

    def __init__(self, responses):
        super().__init__(model="fake-model", api_key="fake-key")
        self.responses = list(responses)
        self.prompts = []

    async def generate_content(self, prompt, system_prompt=None):
        self.prompts.append(prompt)
        return CompletionResult(
            text=self.responses.pop(0),
            model_used=self.model,
            provider="fake",
        )

    def get_cost_estimate(self, input_tokens, output_tokens):
        return 0.0


def write_file(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path

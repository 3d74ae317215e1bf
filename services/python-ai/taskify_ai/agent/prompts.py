import json
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

TEMPLATE_NAMES = ("intent", "questions", "plan")
DEFAULT_TEMPLATES_PATH = Path(__file__).with_name("prompts.yaml")


class PromptTemplates:
    def __init__(self, templates: Dict[str, str]) -> None:
        missing = [name for name in TEMPLATE_NAMES if not isinstance(templates.get(name), str)]
        if missing:
            raise ValueError(f"Prompt templates missing: {', '.join(missing)}")
        self._templates = dict(templates)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "PromptTemplates":
        content = (path or DEFAULT_TEMPLATES_PATH).read_text(encoding="utf-8")
        parsed = yaml.safe_load(content)
        if not isinstance(parsed, dict):
            raise ValueError("Prompt template file did not produce an object")
        return cls(parsed)

    def render(self, name: str, payload: Any) -> str:
        body = payload if isinstance(payload, str) else json.dumps(payload, indent=2, default=str)
        return f"{self._templates[name].rstrip()}\n{body}"

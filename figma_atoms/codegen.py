"""為 registry 缺少的目錄元件產生 React 元件."""

import json
import re
from typing import Optional

DEFAULT_CODEGEN_MODEL = "gpt-4-turbo"

CODEGEN_SYSTEM_PROMPT = (
    "You are a senior frontend engineer who converts UI specs into small, reusable React components."
)

_FENCE_RE = re.compile(r"```[a-zA-Z]*\n(.*?)```", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """回傳第一個 code fence 的內容；沒有則原樣回傳。"""
    m = _FENCE_RE.search(text or "")
    return m.group(1) if m else (text or "")


def component_file_path(component_name: str, directory: str = "src/components", extension: str = "tsx") -> str:
    safe = "".join(ch if ch.isalnum() else " " for ch in component_name).strip()
    parts = [p for p in safe.split() if p]
    pascal = "".join(p[:1].upper() + p[1:] for p in parts) or "Unnamed"
    return f"{directory.rstrip('/')}/{pascal}.{extension}"


class ComponentGenerator:
    """請 OpenAI chat model 依 Figma 結構產生 React 元件."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client=None):
        self.api_key = api_key
        self.model = model or DEFAULT_CODEGEN_MODEL
        self._client = client

    def _get_client(self):
        """延遲載入 OpenAI client."""
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def generate(self, component_name: str, structure) -> str:
        client = self._get_client()
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": CODEGEN_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Create a React component named '{component_name}' from this Figma structure:\n"
                        f"{json.dumps(structure, ensure_ascii=False)}"
                    ),
                },
            ],
        )
        return response.choices[0].message.content or ""

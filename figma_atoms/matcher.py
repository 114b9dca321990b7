"""
Registry 比對

將原子元件目錄分成 registry 已有（existing）與新元件（new）。本機 substring
比對永遠可用；OpenAI fuzzy matcher 可處理命名差異（``BadgeStack`` vs
``badge-stack``），但其輸出不可信，需驗證後每個元件恰好落在一邊。
"""

import json
import re
from dataclasses import dataclass, field
from typing import Optional

STRATEGY_SUBSTRING = "substring"
STRATEGY_RESIDUE = "residue"
STRATEGY_ORACLE = "oracle"
STRATEGIES = (STRATEGY_SUBSTRING, STRATEGY_RESIDUE, STRATEGY_ORACLE)

DEFAULT_ORACLE_MODEL = "gpt-3.5-turbo"
DEFAULT_ORACLE_TEMPERATURE = 0.1
DEFAULT_ORACLE_MAX_TOKENS = 500

ORACLE_SYSTEM_PROMPT = """Analyze component names against registry content. Return JSON with:
{
  "existing": [{"originalName": "ComponentName", "matchedName": "RegistryName"}],
  "new": ["ComponentName"]
}

Rules:
1. Match variations (e.g., "BadgeStack" = "badge-stack" = "Badge Stack")
2. Consider partial matches (e.g., "Badge" in "BadgeStack")
3. Be conservative in matching"""

_IDENT_CHARS = re.compile(r"[A-Za-z0-9_\-]")


class OracleError(Exception):
    """fuzzy matcher 回傳的內容無法作為分割結果。"""


@dataclass
class ExistingMatch:
    component: object
    matched_name: str

    def to_dict(self) -> dict:
        data = self.component.to_dict()
        data["matchedName"] = self.matched_name
        return data


@dataclass
class MatchResult:
    existing: list = field(default_factory=list)
    new: list = field(default_factory=list)
    registry_checked: bool = True
    strategy: str = STRATEGY_SUBSTRING
    analysis: Optional[dict] = None
    oracle_error: Optional[str] = None

    def __len__(self) -> int:
        return len(self.existing) + len(self.new)


def _identifier_at(text: str, start: int, end: int) -> str:
    """把 ``text[start:end]`` 擴展到前後相連的識別字元。"""
    while start > 0 and _IDENT_CHARS.match(text[start - 1]):
        start -= 1
    while end < len(text) and _IDENT_CHARS.match(text[end]):
        end += 1
    return text[start:end]


def substring_match(name: str, registry_text: str) -> Optional[str]:
    """回傳包含 ``name`` 的 registry 識別字（不分大小寫），找不到為 None。

    空名稱一律不比對。
    """
    needle = (name or "").lower()
    if not needle:
        return None
    index = registry_text.lower().find(needle)
    if index < 0:
        return None
    return _identifier_at(registry_text, index, index + len(needle))


def validate_partition(names: list, analysis) -> dict:
    """將 oracle 原始輸出轉成 ``{name: matched_name 或 None}``，涵蓋每個輸入名稱。

    只出現在 existing 的名稱保留其比對結果；兩邊都沒有、兩邊都有、或
    ``matchedName`` 為空者視為 new。oracle 自行捏造的名稱忽略。
    """
    existing_raw = []
    new_raw = []
    if isinstance(analysis, dict):
        existing_raw = analysis.get("existing") or []
        new_raw = analysis.get("new") or []
    if not isinstance(existing_raw, list):
        existing_raw = []
    if not isinstance(new_raw, list):
        new_raw = []

    matched = {}
    for entry in existing_raw:
        if not isinstance(entry, dict):
            continue
        original = entry.get("originalName")
        if not isinstance(original, str):
            continue
        matched.setdefault(original, entry.get("matchedName") or "")
    new_names = {n for n in new_raw if isinstance(n, str)}

    resolved = {}
    for name in names:
        if name in resolved:
            continue
        if name in matched and name not in new_names and matched[name]:
            resolved[name] = matched[name]
        else:
            resolved[name] = None
    return resolved


class FuzzyMatcher:
    """以 OpenAI chat completion 做名稱模糊比對."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client=None,
    ):
        self.api_key = api_key
        self.model = model or DEFAULT_ORACLE_MODEL
        self.temperature = DEFAULT_ORACLE_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or DEFAULT_ORACLE_MAX_TOKENS
        self._client = client

    def _get_client(self):
        """延遲載入 OpenAI client."""
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def compare(self, registry_text: str, names: list) -> dict:
        client = self._get_client()
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": ORACLE_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Registry:\n{registry_text}\n\nComponents:\n{json.dumps(names, indent=2)}",
                },
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        content = response.choices[0].message.content or ""
        try:
            analysis = json.loads(content)
        except json.JSONDecodeError as e:
            raise OracleError(f"oracle returned invalid JSON: {e}") from e
        if not isinstance(analysis, dict):
            raise OracleError("oracle returned a non-object JSON value")
        return analysis


class RegistryMatcher:
    """依 registry 內容將元件分成 existing / new."""

    def __init__(self, oracle: Optional[FuzzyMatcher] = None, strategy: str = STRATEGY_RESIDUE):
        if strategy not in STRATEGIES:
            raise ValueError(f"unknown matching strategy '{strategy}' (expected one of {', '.join(STRATEGIES)})")
        self.oracle = oracle
        self.strategy = strategy if oracle is not None else STRATEGY_SUBSTRING

    def match(self, components: list, registry_text: Optional[str]) -> MatchResult:
        if registry_text is None:
            return MatchResult(new=list(components), registry_checked=False, strategy=self.strategy)

        resolved = {}
        if self.strategy != STRATEGY_ORACLE:
            for component in components:
                if component.name not in resolved:
                    resolved[component.name] = substring_match(component.name, registry_text)

        analysis = None
        oracle_error = None
        if self.strategy != STRATEGY_SUBSTRING:
            pending = []
            for component in components:
                if resolved.get(component.name) is None and component.name not in pending:
                    pending.append(component.name)
            if pending:
                try:
                    analysis = self.oracle.compare(registry_text, pending)
                except Exception as e:
                    oracle_error = str(e)
                if analysis is not None:
                    resolved.update(validate_partition(pending, analysis))

        result = MatchResult(
            strategy=self.strategy, analysis=analysis, oracle_error=oracle_error,
        )
        for component in components:
            matched_name = resolved.get(component.name)
            if matched_name:
                result.existing.append(ExistingMatch(component, matched_name))
            else:
                result.new.append(component)
        return result

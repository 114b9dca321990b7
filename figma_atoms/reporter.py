"""
Diff 報告組裝

合併分類目錄與 registry 比對結果。此處不做判斷；只有在 existing/new
無法恰好涵蓋整個目錄時拒絕產生報告。
"""

import json
from dataclasses import dataclass, field
from typing import Optional

from .matcher import MatchResult


class ReportIntegrityError(Exception):
    """比對結果沒有完整分割元件目錄."""


@dataclass(frozen=True)
class DiffReport:
    existing_components: tuple
    new_components: tuple
    screens: tuple
    file_info: dict = field(default_factory=dict)
    registry_checked: bool = True
    registry_path: Optional[str] = None
    message: str = ""
    registry_error: Optional[dict] = None
    available_paths: Optional[tuple] = None
    analysis: Optional[dict] = None
    oracle_error: Optional[str] = None

    def to_dict(self) -> dict:
        components = {
            "existing": [m.to_dict() for m in self.existing_components],
            "new": [c.to_dict() for c in self.new_components],
        }
        if self.analysis is not None:
            components["analysis"] = self.analysis
        data = {
            "success": True,
            "message": self.message,
            "registryChecked": self.registry_checked,
            "registryPath": self.registry_path,
            "components": components,
            "screens": [s.to_dict() for s in self.screens],
            "fileInfo": dict(self.file_info),
        }
        if self.oracle_error:
            data["oracleError"] = self.oracle_error
        if self.registry_error:
            data["registryError"] = dict(self.registry_error)
        if self.available_paths is not None:
            data["availablePaths"] = list(self.available_paths)
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def summary(self) -> str:
        return (
            f"{len(self.existing_components)} existing, {len(self.new_components)} new, "
            f"{len(self.screens)} screens"
        )


def pick_file_info(figma_file: Optional[dict]) -> dict:
    """保留在報告上的 Figma 檔案 metadata（追溯用）。"""
    data = figma_file or {}
    return {
        "name": data.get("name"),
        "lastModified": data.get("lastModified"),
        "version": data.get("version"),
    }


def _check_partition(components: list, match: MatchResult) -> None:
    seen = [id(m.component) for m in match.existing] + [id(c) for c in match.new]
    expected = sorted(id(c) for c in components)
    if sorted(seen) != expected:
        raise ReportIntegrityError(
            f"match result covers {len(seen)} components, catalogue has {len(components)}"
        )


def _default_message(match: MatchResult, registry_path: Optional[str], registry_error) -> str:
    if registry_error:
        return "Registry access failed, returning all components as new"
    if not match.registry_checked:
        return "Registry file not found in repository"
    return f"Components parsed and checked against {registry_path or 'registry'}"


def build_diff_report(
    components: list,
    screens: list,
    match: MatchResult,
    file_info: Optional[dict] = None,
    registry_path: Optional[str] = None,
    registry_error: Optional[dict] = None,
    available_paths: Optional[list] = None,
    message: Optional[str] = None,
) -> DiffReport:
    _check_partition(components, match)
    return DiffReport(
        existing_components=tuple(match.existing),
        new_components=tuple(match.new),
        screens=tuple(screens),
        file_info=dict(file_info or {}),
        registry_checked=match.registry_checked,
        registry_path=registry_path,
        message=message or _default_message(match, registry_path, registry_error),
        registry_error=registry_error,
        available_paths=tuple(available_paths) if available_paths is not None else None,
        analysis=match.analysis,
        oracle_error=match.oracle_error,
    )

"""
Figma → 元件目錄 → registry diff

Straight-line composition of the stages: fetch the document, classify every
node, look up the registry, match, assemble the report. Figma failures
propagate; registry failures turn into a registry-absent report.
"""

from typing import Optional

from .classifier import Catalogue, ClassifierConfig, extract_catalogue
from .figma_reader import FigmaAPIClient, fetch_document
from .matcher import RegistryMatcher
from .registry import DEFAULT_REGISTRY_PATHS, GitLabClient, locate_registry
from .reporter import DiffReport, build_diff_report, pick_file_info


def parse_figma(
    figma: FigmaAPIClient,
    file_key: str,
    node_id: Optional[str] = None,
    classifier_config: Optional[ClassifierConfig] = None,
) -> tuple:
    """回傳 ``(catalogue, file_info)``；讀取失敗拋出 ``FigmaSourceError``。"""
    root, figma_file = fetch_document(figma, file_key, node_id)
    return extract_catalogue(root, classifier_config), pick_file_info(figma_file)


def check_components(
    components: list,
    gitlab: GitLabClient,
    matcher: Optional[RegistryMatcher] = None,
    candidates=DEFAULT_REGISTRY_PATHS,
    screens: Optional[list] = None,
    file_info: Optional[dict] = None,
    ref: Optional[str] = None,
) -> DiffReport:
    """以已建立的元件清單對 registry 做 diff。"""
    matcher = matcher or RegistryMatcher()
    lookup = locate_registry(gitlab, candidates, ref=ref)
    match = matcher.match(components, lookup.content)
    return build_diff_report(
        components,
        screens or [],
        match,
        file_info=file_info,
        registry_path=lookup.path,
        registry_error=lookup.error.to_dict() if lookup.error else None,
        available_paths=None if lookup.found or lookup.error else lookup.available_paths,
    )


def parse_and_check(
    figma: FigmaAPIClient,
    gitlab: GitLabClient,
    file_key: str,
    node_id: Optional[str] = None,
    matcher: Optional[RegistryMatcher] = None,
    candidates=DEFAULT_REGISTRY_PATHS,
    classifier_config: Optional[ClassifierConfig] = None,
    ref: Optional[str] = None,
) -> DiffReport:
    catalogue, file_info = parse_figma(figma, file_key, node_id, classifier_config)
    return check_components(
        catalogue.components,
        gitlab,
        matcher=matcher,
        candidates=candidates,
        screens=catalogue.screens,
        file_info=file_info,
        ref=ref,
    )


def diff_catalogue(
    catalogue: Catalogue,
    registry_text: Optional[str],
    matcher: Optional[RegistryMatcher] = None,
    file_info: Optional[dict] = None,
    registry_path: Optional[str] = None,
) -> DiffReport:
    """離線版本：直接提供 registry 內容（``None`` 表示不存在）。"""
    matcher = matcher or RegistryMatcher()
    match = matcher.match(catalogue.components, registry_text)
    return build_diff_report(
        catalogue.components,
        catalogue.screens,
        match,
        file_info=file_info,
        registry_path=registry_path,
    )

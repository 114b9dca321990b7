"""
figma-atoms — Figma 原子元件目錄與元件 registry diff

走訪 Figma 節點樹、分類原子元件與畫面，並與 GitLab 上的元件 registry 比對。
"""

__version__ = "0.1.0"

from .tree_walker import NodeVisit, walk_tree, count_nodes
from .records import Category, ComponentRecord, ScreenRecord
from .classifier import (
    ATOMIC_PATTERNS,
    SCREEN_PATTERNS,
    CATEGORY_RULES,
    Catalogue,
    Classification,
    ClassifierConfig,
    classify,
    determine_category,
    extract_catalogue,
    is_atomic_component,
    is_screen_or_frame,
)
from .matcher import FuzzyMatcher, MatchResult, RegistryMatcher, substring_match, validate_partition
from .reporter import DiffReport, ReportIntegrityError, build_diff_report
from .figma_reader import FigmaAPIClient, FigmaSourceError, fetch_document
from .registry import GitLabClient, RegistrySourceError, locate_registry
from .codegen import ComponentGenerator
from .pipeline import check_components, diff_catalogue, parse_and_check, parse_figma
from .config import load_config, validate_config

__all__ = [
    "__version__",
    "NodeVisit",
    "walk_tree",
    "count_nodes",
    "Category",
    "ComponentRecord",
    "ScreenRecord",
    "ATOMIC_PATTERNS",
    "SCREEN_PATTERNS",
    "CATEGORY_RULES",
    "Catalogue",
    "Classification",
    "ClassifierConfig",
    "classify",
    "determine_category",
    "extract_catalogue",
    "is_atomic_component",
    "is_screen_or_frame",
    "FuzzyMatcher",
    "MatchResult",
    "RegistryMatcher",
    "substring_match",
    "validate_partition",
    "DiffReport",
    "ReportIntegrityError",
    "build_diff_report",
    "FigmaAPIClient",
    "FigmaSourceError",
    "fetch_document",
    "GitLabClient",
    "RegistrySourceError",
    "locate_registry",
    "ComponentGenerator",
    "check_components",
    "diff_catalogue",
    "parse_and_check",
    "parse_figma",
    "load_config",
    "validate_config",
]

"""
原子元件 / 畫面分類

對每個走訪到的節點判斷：原子元件、畫面 frame，或兩者皆非；原子元件再指派分類。
關鍵字清單皆為有序表，第一個命中者勝出，順序本身即是契約的一部分。
"""

from dataclasses import dataclass, field
from typing import Optional

from .records import (
    Category,
    ComponentRecord,
    ScreenRecord,
    bounding_size,
    component_from_node,
    screen_from_node,
)
from .tree_walker import NodeVisit, walk_tree

DEFAULT_SIZE_THRESHOLD = 500

COMPONENT_TYPES = ("COMPONENT", "INSTANCE")
SCREEN_TYPES = ("FRAME",)

ATOMIC_PATTERNS = (
    "button", "input", "text", "icon", "image", "avatar", "badge",
    "statusbar", "header", "footer", "card", "list", "tab", "modal",
    "checkbox", "radio", "switch", "slider", "progress", "spinner",
)

SCREEN_PATTERNS = (
    "page", "screen", "view", "layout", "container", "section",
    "home", "dashboard", "profile", "settings",
)

# (keywords, category)：任一 keyword 命中即回傳，依序比對
CATEGORY_RULES = (
    (("statusbar",), Category.STATUS_BAR),
    (("button",), Category.BUTTON),
    (("input", "textfield"), Category.INPUT),
    (("text",), Category.TEXT),
    (("icon",), Category.ICON),
    (("image",), Category.IMAGE),
    (("avatar",), Category.AVATAR),
    (("badge",), Category.BADGE),
    (("card",), Category.CARD),
    (("list",), Category.LIST),
    (("tab",), Category.TAB),
    (("modal",), Category.MODAL),
)

KIND_COMPONENT = "component"
KIND_SCREEN = "screen"
KIND_NEITHER = "neither"


@dataclass
class ClassifierConfig:
    size_threshold: float = DEFAULT_SIZE_THRESHOLD
    atomic_patterns: tuple = ATOMIC_PATTERNS
    screen_patterns: tuple = SCREEN_PATTERNS
    category_rules: tuple = CATEGORY_RULES

    @classmethod
    def from_config(cls, config: Optional[dict]) -> "ClassifierConfig":
        section = (config or {}).get("classification", {}) or {}
        threshold = section.get("sizeThreshold", DEFAULT_SIZE_THRESHOLD)
        # 非數字（validate_config 已警告）一律退回預設值
        if not _is_number(threshold):
            threshold = DEFAULT_SIZE_THRESHOLD
        return cls(size_threshold=threshold)


@dataclass
class Classification:
    kind: str
    component: Optional[ComponentRecord] = None
    screen: Optional[ScreenRecord] = None


@dataclass
class Catalogue:
    components: list = field(default_factory=list)
    screens: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "components": [c.to_dict() for c in self.components],
            "screens": [s.to_dict() for s in self.screens],
        }


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _lower_name(node: dict) -> str:
    return (node.get("name") or "").lower()


def _matches_any(name: str, patterns) -> bool:
    return any(pattern in name for pattern in patterns)


def is_atomic_component(node: dict, config: Optional[ClassifierConfig] = None) -> bool:
    """COMPONENT/INSTANCE 且名稱命中原子關鍵字，或寬高皆小於門檻。"""
    cfg = config or ClassifierConfig()
    if node.get("type") not in COMPONENT_TYPES:
        return False
    if _matches_any(_lower_name(node), cfg.atomic_patterns):
        return True
    width, height = bounding_size(node)
    return (
        _is_number(width) and _is_number(height)
        and width < cfg.size_threshold and height < cfg.size_threshold
    )


def is_screen_or_frame(node: dict, config: Optional[ClassifierConfig] = None) -> bool:
    """FRAME 且名稱命中畫面關鍵字，或寬、高任一達到門檻。"""
    cfg = config or ClassifierConfig()
    if node.get("type") not in SCREEN_TYPES:
        return False
    if _matches_any(_lower_name(node), cfg.screen_patterns):
        return True
    width, height = bounding_size(node)
    return (
        (_is_number(width) and width >= cfg.size_threshold)
        or (_is_number(height) and height >= cfg.size_threshold)
    )


def determine_category(node: dict, config: Optional[ClassifierConfig] = None) -> str:
    cfg = config or ClassifierConfig()
    name = _lower_name(node)
    for keywords, category in cfg.category_rules:
        if _matches_any(name, keywords):
            return category
    return Category.OTHER


def classify(visit: NodeVisit, config: Optional[ClassifierConfig] = None) -> Classification:
    """分類單一節點；原子判斷先於畫面判斷，兩者皆符合時視為原子元件。"""
    cfg = config or ClassifierConfig()
    node, path = visit
    if is_atomic_component(node, cfg):
        record = component_from_node(node, path, determine_category(node, cfg))
        return Classification(KIND_COMPONENT, component=record)
    if is_screen_or_frame(node, cfg):
        return Classification(KIND_SCREEN, screen=screen_from_node(node))
    return Classification(KIND_NEITHER)


def extract_catalogue(root: Optional[dict], config: Optional[ClassifierConfig] = None) -> Catalogue:
    """走訪整棵樹，依走訪順序收集原子元件與畫面。"""
    cfg = config or ClassifierConfig()
    components = []
    screens = []
    for visit in walk_tree(root):
        result = classify(visit, cfg)
        if result.kind == KIND_COMPONENT:
            components.append(result.component)
        elif result.kind == KIND_SCREEN:
            screens.append(result.screen)
    return Catalogue(components=components, screens=screens)

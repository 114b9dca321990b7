"""分類時由 Figma 節點產生的紀錄."""

from dataclasses import dataclass, field
from typing import Any, Optional


class Category:
    STATUS_BAR = "STATUS_BAR"
    BUTTON = "BUTTON"
    INPUT = "INPUT"
    TEXT = "TEXT"
    ICON = "ICON"
    IMAGE = "IMAGE"
    AVATAR = "AVATAR"
    BADGE = "BADGE"
    CARD = "CARD"
    LIST = "LIST"
    TAB = "TAB"
    MODAL = "MODAL"
    OTHER = "OTHER"


SCREEN_TYPE = "SCREEN"


def bounding_size(node: dict) -> tuple:
    """從 ``absoluteBoundingBox`` 取 (width, height)，缺值為 None。"""
    bbox = node.get("absoluteBoundingBox") or node.get("boundingBox") or {}
    return bbox.get("width"), bbox.get("height")


@dataclass(frozen=True)
class ComponentRecord:
    name: str
    id: str
    path: tuple
    type: str
    category: str
    description: str = ""
    width: Optional[float] = None
    height: Optional[float] = None
    child_count: int = 0
    styles: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "id": self.id,
            "path": list(self.path),
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "width": self.width,
            "height": self.height,
            "children": self.child_count,
            "styles": dict(self.styles),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComponentRecord":
        """由 ``to_dict`` 輸出（例如存檔的 parse 結果）還原紀錄。"""
        return cls(
            name=data.get("name", ""),
            id=data.get("id", ""),
            path=tuple(data.get("path") or ()),
            type=data.get("type", ""),
            category=data.get("category", Category.OTHER),
            description=data.get("description") or "",
            width=data.get("width"),
            height=data.get("height"),
            child_count=data.get("children", 0) or 0,
            styles=dict(data.get("styles") or {}),
        )


@dataclass(frozen=True)
class ScreenRecord:
    name: str
    id: str
    width: Optional[float] = None
    height: Optional[float] = None
    type: str = SCREEN_TYPE

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "id": self.id,
            "type": self.type,
            "width": self.width,
            "height": self.height,
        }


def component_from_node(node: dict, path: tuple, category: str) -> ComponentRecord:
    width, height = bounding_size(node)
    styles: dict[str, Any] = {
        "backgroundColor": node.get("backgroundColor"),
        "opacity": node.get("opacity"),
        "effects": node.get("effects"),
    }
    return ComponentRecord(
        name=node.get("name", ""),
        id=node.get("id", ""),
        path=path + (node.get("name", ""),),
        type=node.get("type", ""),
        category=category,
        description=node.get("description") or "",
        width=width,
        height=height,
        child_count=len(node.get("children") or []),
        styles=styles,
    )


def screen_from_node(node: dict) -> ScreenRecord:
    width, height = bounding_size(node)
    return ScreenRecord(
        name=node.get("name", ""),
        id=node.get("id", ""),
        width=width,
        height=height,
    )

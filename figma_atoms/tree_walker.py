"""
Figma 節點樹走訪

Depth-first, pre-order walk over a Figma document tree. Each visit carries the
names of every strict ancestor (root first); the node's own name is added by
whoever builds a record from it.
"""

from typing import Iterator, NamedTuple, Optional


class NodeVisit(NamedTuple):
    node: dict
    path: tuple


def _children(node: dict) -> list:
    # children 可能不存在或為 None，一律視為葉節點
    return node.get("children") or []


def walk_tree(root: Optional[dict]) -> Iterator[NodeVisit]:
    """對 ``root`` 底下每個節點產生 ``NodeVisit(node, path)``。

    父節點先於子節點，兄弟節點依文件順序。以迭代實作，深層樹不會碰到遞迴
    上限；同層兄弟共用同一個祖先 tuple。以同一 root 再呼叫一次即重新走訪。
    """
    if not root:
        return
    stack = [(root, ())]
    while stack:
        node, path = stack.pop()
        yield NodeVisit(node, path)
        children = _children(node)
        if children:
            child_path = path + (node.get("name", ""),)
            for child in reversed(children):
                stack.append((child, child_path))


def count_nodes(root: Optional[dict]) -> int:
    return sum(1 for _ in walk_tree(root))

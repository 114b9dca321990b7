"""
Figma REST API 讀取

Read-only wrapper around the Figma files API. Failures surface as
``FigmaSourceError`` with the HTTP status kept, so callers can tell an
expired token from a network hiccup.
"""

from typing import Optional

import requests

TRANSIENT_STATUSES = (408, 429, 500, 502, 503, 504)


class SourceError(Exception):
    """遠端來源（Figma、GitLab）讀取失敗。"""

    source = "source"

    def __init__(self, message: str, status: Optional[int] = None, details=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details

    @property
    def is_transient(self) -> bool:
        """網路錯誤、限流與 5xx 屬暫時性；其餘視為設定問題。"""
        return self.status is None or self.status in TRANSIENT_STATUSES

    def to_dict(self) -> dict:
        return {"status": self.status, "message": self.message, "details": self.details}

    @classmethod
    def from_request_error(cls, err: requests.RequestException) -> "SourceError":
        response = getattr(err, "response", None)
        if response is None:
            return cls(f"{cls.source} unreachable: {err}")
        details = None
        message = str(err)
        try:
            details = response.json()
        except ValueError:
            details = None
        if isinstance(details, dict):
            message = details.get("message") or details.get("err") or message
        return cls(str(message), status=response.status_code, details=details)


class FigmaSourceError(SourceError):
    source = "Figma API"


class FigmaAPIClient:
    """Figma REST API 唯讀封裝."""

    BASE_URL = "https://api.figma.com/v1"

    def __init__(self, token: str, timeout: float = 30):
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "X-Figma-Token": token,
            "Content-Type": "application/json",
        })

    def _get(self, url: str, params: Optional[dict] = None) -> dict:
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise FigmaSourceError.from_request_error(e) from e

    def get_file(self, file_key: str) -> dict:
        return self._get(f"{self.BASE_URL}/files/{file_key}")

    def get_file_nodes(self, file_key: str, node_ids: list) -> dict:
        params = {"ids": ",".join(node_ids)}
        return self._get(f"{self.BASE_URL}/files/{file_key}/nodes", params=params)


def fetch_document(client: FigmaAPIClient, file_key: str, node_id: Optional[str] = None) -> tuple:
    """回傳 ``(root_node, figma_file)``。

    指定 ``node_id`` 時 root 為該節點的 document，否則為整份檔案 document。
    ``figma_file`` 是完整檔案內容（name、version、lastModified），供報告 metadata 使用。
    """
    figma_file = client.get_file(file_key)
    if not node_id:
        document = figma_file.get("document")
        if not document:
            raise FigmaSourceError(f"file '{file_key}' has no document", status=404)
        return document, figma_file

    nodes = client.get_file_nodes(file_key, [node_id]).get("nodes") or {}
    entry = nodes.get(node_id)
    if not entry and len(nodes) == 1:
        # Figma 會把 "1-2" 正規化成 "1:2"
        entry = next(iter(nodes.values()))
    if not entry or not entry.get("document"):
        raise FigmaSourceError(f"node '{node_id}' not found in file '{file_key}'", status=404)
    return entry["document"], figma_file

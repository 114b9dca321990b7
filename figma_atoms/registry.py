"""
GitLab 元件 registry 來源

逐頁列出 repository tree，從候選路徑中找出 registry 檔並讀取原始內容。
另含發佈產生元件用的寫入端（建立分支 + commit）。
"""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

import requests

from .figma_reader import SourceError

DEFAULT_BASE_URL = "https://gitlab.com/api/v4"
DEFAULT_PAGE_SIZE = 100
MAX_TREE_PAGES = 500

DEFAULT_REGISTRY_PATHS = (
    "packages/customer/src/registry.ts",
    "packages/src/customer/vdlComponents/registry.ts",
    "packages/src/registry.ts",
    "src/registry.ts",
)


class RegistrySourceError(SourceError):
    source = "GitLab API"


def mask_token(token: Optional[str]) -> str:
    if not token:
        return "<unset>"
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-4:]}"


class GitLabClient:
    """GitLab REST API v4 封裝（單一專案）."""

    def __init__(self, token: str, project_id: str, base_url: str = DEFAULT_BASE_URL, timeout: float = 30):
        self.token = token
        self.project_id = str(project_id)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "PRIVATE-TOKEN": token,
            "Content-Type": "application/json",
        })

    @property
    def project_url(self) -> str:
        return f"{self.base_url}/projects/{quote(self.project_id, safe='')}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp
        except requests.RequestException as e:
            raise RegistrySourceError.from_request_error(e) from e

    def get_project(self) -> dict:
        return self._request("GET", self.project_url).json()

    def list_tree(
        self,
        ref: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = MAX_TREE_PAGES,
    ) -> list:
        """逐頁取得 repository 所有項目，遇到空頁即停止；``ref`` 為空時用預設分支。"""
        entries = []
        for page in range(1, max_pages + 1):
            params = {"recursive": "true", "per_page": page_size, "page": page}
            if ref:
                params["ref"] = ref
            resp = self._request("GET", f"{self.project_url}/repository/tree", params=params)
            batch = resp.json()
            if not batch:
                break
            entries.extend(batch)
        return entries

    def get_raw_file(self, path: str, ref: Optional[str] = None) -> str:
        url = f"{self.project_url}/repository/files/{quote(path, safe='')}/raw"
        params = {"ref": ref} if ref else None
        return self._request("GET", url, params=params).text

    def create_branch(self, branch: str, ref: str = "main") -> dict:
        return self._request(
            "POST", f"{self.project_url}/repository/branches",
            json={"branch": branch, "ref": ref},
        ).json()

    def commit_file(
        self,
        branch: str,
        file_path: str,
        content: str,
        message: str,
        action: str = "create",
    ) -> dict:
        payload = {
            "branch": branch,
            "commit_message": message,
            "actions": [{"action": action, "file_path": file_path, "content": content}],
        }
        return self._request("POST", f"{self.project_url}/repository/commits", json=payload).json()


@dataclass
class RegistryLookup:
    path: Optional[str] = None
    content: Optional[str] = None
    available_paths: list = field(default_factory=list)
    error: Optional[RegistrySourceError] = None

    @property
    def found(self) -> bool:
        return self.content is not None


def find_registry_path(paths: list, candidates=DEFAULT_REGISTRY_PATHS) -> Optional[str]:
    """依候選順序回傳第一個存在於 ``paths`` 的路徑."""
    present = set(paths)
    for candidate in candidates:
        if candidate in present:
            return candidate
    return None


def locate_registry(client: GitLabClient, candidates=DEFAULT_REGISTRY_PATHS, ref: Optional[str] = None) -> RegistryLookup:
    """找出並讀取 registry 檔（tree 與檔案都取自同一個 ``ref``）。

    找不到檔案是正常結果（``found`` 為 False）；來源無法連線時 ``content``
    同樣為空，但保留錯誤供報告使用。
    """
    try:
        entries = client.list_tree(ref=ref)
        paths = [e.get("path") for e in entries if isinstance(e, dict) and e.get("path")]
        path = find_registry_path(paths, candidates)
        if path is None:
            return RegistryLookup(available_paths=paths)
        content = client.get_raw_file(path, ref=ref)
    except RegistrySourceError as e:
        return RegistryLookup(error=e)
    return RegistryLookup(path=path, content=content, available_paths=paths)


def check_gitlab(client: GitLabClient, candidates=DEFAULT_REGISTRY_PATHS, ref: Optional[str] = None) -> dict:
    """驗證專案存取權，並回報 registry 檔位置（若有）。

    專案無法讀取時拋出 ``RegistrySourceError``。
    """
    project = client.get_project()
    entries = [e for e in client.list_tree(ref=ref) if isinstance(e, dict)]
    paths = [e.get("path") for e in entries]
    path = find_registry_path(paths, candidates)
    registry_entry = next((e for e in entries if e.get("path") == path), None) if path else None
    return {
        "project": {
            "id": client.project_id,
            "name": project.get("name"),
            "path": project.get("path_with_namespace"),
            "visibility": project.get("visibility"),
        },
        "repository": {
            "hasAccess": True,
            "fileCount": len(paths),
            "registryFile": {
                "path": registry_entry.get("path"),
                "type": registry_entry.get("type"),
            } if registry_entry else None,
        },
    }

#!/usr/bin/env python3
"""
figma-atoms CLI — Figma 原子元件目錄與 registry diff

  figma-atoms parse --file-key KEY [--node-id ID]          # 元件 / 畫面目錄
  figma-atoms check --components parse-result.json         # 對 registry diff
  figma-atoms parse-and-check --file-key KEY               # 兩者合併
  figma-atoms diff --document doc.json --registry reg.ts   # 離線 diff
  figma-atoms generate --name PrimaryButton --structure node.json
  figma-atoms commit --branch feat/x --file-path src/X.tsx --code-file X.tsx
  figma-atoms test-gitlab
"""

import argparse
import json
import os
import sys
from pathlib import Path

from figma_atoms import __version__

from .classifier import Catalogue, ClassifierConfig, extract_catalogue
from .codegen import ComponentGenerator, component_file_path, strip_code_fence
from .config import ConfigError, load_config, require_settings, resolve_settings
from .figma_reader import FigmaAPIClient, FigmaSourceError
from .matcher import STRATEGY_RESIDUE, STRATEGY_SUBSTRING, FuzzyMatcher, RegistryMatcher
from .pipeline import check_components, diff_catalogue, parse_and_check, parse_figma
from .records import ComponentRecord
from .registry import (
    DEFAULT_BASE_URL,
    DEFAULT_REGISTRY_PATHS,
    GitLabClient,
    RegistrySourceError,
    check_gitlab,
    mask_token,
)
from .reporter import pick_file_info


def _output_dir(args, settings: dict) -> str:
    return args.output or settings["export"].get("outputDir") or ".figma-atoms"


def _write_json(output_dir: str, filename: str, data) -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def _require(settings: dict, names: list) -> bool:
    try:
        require_settings(settings, names)
    except ConfigError as e:
        print(f"❌ 缺少必要設定：{', '.join(e.missing)}")
        print("   請設定環境變數（或 .env），或寫入 figma-atoms.config.json。")
        return False
    return True


def _print_source_error(e) -> None:
    if isinstance(e, FigmaSourceError):
        if e.status == 403:
            print("❌ Figma API 403：Token 無效或已過期，請重新產生 FIGMA_TOKEN。")
        elif e.status == 404:
            print(f"❌ Figma API 404：{e.message}")
        else:
            print(f"❌ Figma API 錯誤（status={e.status}）：{e.message}")
    else:
        print(f"❌ GitLab API 錯誤（status={e.status}）：{e.message}")
    if e.is_transient:
        print("   ℹ️  可能是暫時性網路問題，請稍後重試。")


def _classifier_config(settings: dict) -> ClassifierConfig:
    return ClassifierConfig.from_config(settings)


def _figma_client(settings: dict) -> FigmaAPIClient:
    return FigmaAPIClient(settings["figma"]["personalAccessToken"])


def _gitlab_client(settings: dict) -> GitLabClient:
    gitlab = settings["gitlab"]
    return GitLabClient(gitlab["token"], gitlab["projectId"], base_url=gitlab.get("baseUrl") or DEFAULT_BASE_URL)


def _registry_paths(settings: dict) -> tuple:
    return tuple(settings["gitlab"].get("registryPaths") or DEFAULT_REGISTRY_PATHS)


def build_matcher(settings: dict, strategy=None) -> RegistryMatcher:
    """依設定建立 registry matcher；沒有 OpenAI key 時只做 substring 比對。"""
    requested = strategy or settings["matching"].get("strategy")
    strategy = requested or STRATEGY_RESIDUE
    openai_cfg = settings["openai"]
    if strategy == STRATEGY_SUBSTRING:
        return RegistryMatcher(strategy=STRATEGY_SUBSTRING)
    if not openai_cfg.get("apiKey"):
        if requested:
            # 走 stderr，避免污染 diff --json 的輸出
            print(f"   ⚠️  matching strategy '{strategy}' 需要 OPENAI_API_KEY，改用 substring 比對。", file=sys.stderr)
        return RegistryMatcher(strategy=STRATEGY_SUBSTRING)
    oracle = FuzzyMatcher(
        api_key=openai_cfg["apiKey"],
        model=openai_cfg.get("model"),
        temperature=openai_cfg.get("temperature"),
        max_tokens=openai_cfg.get("maxTokens"),
    )
    return RegistryMatcher(oracle=oracle, strategy=strategy)


def _print_report(report) -> None:
    print(f"   ✅ {report.message}")
    print(f"   📦 {report.summary()}")
    if report.registry_error:
        print(f"   ⚠️  Registry error: {report.registry_error.get('message')}")
    if report.oracle_error:
        print(f"   ⚠️  Fuzzy matcher failed, unmatched names kept as new: {report.oracle_error}")
    for m in report.existing_components:
        print(f"     = {m.component.name} → {m.matched_name}")
    for c in report.new_components:
        print(f"     + {c.name} [{c.category}]")


def cmd_parse(args, settings: dict) -> int:
    """Parse: Figma → 原子元件 + 畫面目錄."""
    if not _require(settings, ["figma.personalAccessToken"]):
        return 1
    file_key = args.file_key or settings["figma"].get("fileKey")
    if not file_key:
        print("❌ 請使用 --file-key 或在 config 的 figma.fileKey 設定 Figma 檔案 key。")
        return 1
    node_id = args.node_id or settings["figma"].get("nodeId")

    print(f"📥 Parsing Figma file: {file_key}")
    try:
        catalogue, file_info = parse_figma(_figma_client(settings), file_key, node_id, _classifier_config(settings))
    except FigmaSourceError as e:
        _print_source_error(e)
        return 1

    print(f"   ✅ {len(catalogue.components)} atomic components, {len(catalogue.screens)} screens")
    result = {"success": True, **catalogue.to_dict(), "fileInfo": file_info}
    path = _write_json(_output_dir(args, settings), "parse-result.json", result)
    print(f"   📄 Saved to {path}")
    return 0


def _load_components(path: str) -> tuple:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        return [ComponentRecord.from_dict(c) for c in data], {}
    return [ComponentRecord.from_dict(c) for c in data.get("components", [])], data.get("fileInfo") or {}


def cmd_check(args, settings: dict) -> int:
    """Check: 已解析的元件目錄 → registry diff."""
    if not _require(settings, ["gitlab.token", "gitlab.projectId"]):
        return 1
    components, file_info = _load_components(args.components)
    print(f"🔎 Checking {len(components)} components against registry...")
    report = check_components(
        components,
        _gitlab_client(settings),
        matcher=build_matcher(settings, args.strategy),
        candidates=_registry_paths(settings),
        file_info=file_info,
        ref=settings["gitlab"].get("ref"),
    )
    _print_report(report)
    path = _write_json(_output_dir(args, settings), "diff-report.json", report.to_dict())
    print(f"   📄 Report saved to {path}")
    return 0


def cmd_parse_and_check(args, settings: dict) -> int:
    """Parse + Check：Figma → 元件目錄 → registry diff."""
    required = ["figma.personalAccessToken", "gitlab.token", "gitlab.projectId"]
    if not _require(settings, required):
        return 1
    file_key = args.file_key or settings["figma"].get("fileKey")
    if not file_key:
        print("❌ 請使用 --file-key 或在 config 的 figma.fileKey 設定 Figma 檔案 key。")
        return 1
    node_id = args.node_id or settings["figma"].get("nodeId")

    print(f"📥 Parsing Figma file: {file_key}")
    print(f"   GitLab project {settings['gitlab']['projectId']} (token {mask_token(settings['gitlab']['token'])})")
    try:
        report = parse_and_check(
            _figma_client(settings),
            _gitlab_client(settings),
            file_key,
            node_id=node_id,
            matcher=build_matcher(settings, args.strategy),
            candidates=_registry_paths(settings),
            classifier_config=_classifier_config(settings),
            ref=settings["gitlab"].get("ref"),
        )
    except FigmaSourceError as e:
        _print_source_error(e)
        return 1

    _print_report(report)
    path = _write_json(_output_dir(args, settings), "diff-report.json", report.to_dict())
    print(f"   📄 Report saved to {path}")
    return 0


def cmd_diff(args, settings: dict) -> int:
    """Diff：本機 Figma JSON + 本機 registry 檔（不需網路，除非啟用 fuzzy matcher）."""
    with open(args.document, "r", encoding="utf-8") as f:
        figma_file = json.load(f)
    root = figma_file.get("document", figma_file) if isinstance(figma_file, dict) else None
    if not isinstance(root, dict):
        print(f"❌ '{args.document}' 不是 Figma 檔案或節點 JSON。")
        return 1

    registry_text = None
    registry_path = None
    if args.registry and Path(args.registry).exists():
        registry_text = Path(args.registry).read_text(encoding="utf-8")
        registry_path = args.registry
    elif args.registry:
        print(f"   ⚠️  Registry '{args.registry}' 不存在，所有元件視為新元件。")

    catalogue: Catalogue = extract_catalogue(root, _classifier_config(settings))
    report = diff_catalogue(
        catalogue,
        registry_text,
        matcher=build_matcher(settings, args.strategy),
        file_info=pick_file_info(figma_file),
        registry_path=registry_path,
    )
    if args.json:
        print(report.to_json())
        return 0
    _print_report(report)
    path = _write_json(_output_dir(args, settings), "diff-report.json", report.to_dict())
    print(f"   📄 Report saved to {path}")
    return 0


def cmd_generate(args, settings: dict) -> int:
    """Generate：以 OpenAI 產生缺少的 React 元件."""
    if not _require(settings, ["openai.apiKey"]):
        return 1
    with open(args.structure, "r", encoding="utf-8") as f:
        structure = json.load(f)
    generator = ComponentGenerator(api_key=settings["openai"]["apiKey"], model=settings["openai"].get("codegenModel"))
    print(f"🛠️  Generating component '{args.name}'...")
    try:
        code = generator.generate(args.name, structure)
    except Exception as e:
        print(f"❌ Generate failed: {e}")
        return 1
    if not args.raw:
        code = strip_code_fence(code)
    output_dir = _output_dir(args, settings)
    target = os.path.join(output_dir, component_file_path(args.name, args.directory))
    os.makedirs(os.path.dirname(target), exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(code)
    print(f"   ✅ Written to {target}")
    return 0


def cmd_commit(args, settings: dict) -> int:
    """Commit：建立分支並提交元件檔到 GitLab."""
    if not _require(settings, ["gitlab.token", "gitlab.projectId"]):
        return 1
    with open(args.code_file, "r", encoding="utf-8") as f:
        code = f.read()
    client = _gitlab_client(settings)
    ref = args.ref or settings["gitlab"].get("ref") or "main"
    message = args.message or f"Add {Path(args.file_path).stem} component"
    print(f"🌿 Creating branch '{args.branch}' from '{ref}'...")
    try:
        client.create_branch(args.branch, ref)
        client.commit_file(args.branch, args.file_path, code, message)
    except RegistrySourceError as e:
        _print_source_error(e)
        return 1
    print(f"   ✅ Committed {args.file_path} to {args.branch}")
    return 0


def cmd_test_gitlab(args, settings: dict) -> int:
    """驗證 GitLab 設定與 registry 檔位置."""
    if not _require(settings, ["gitlab.token", "gitlab.projectId"]):
        return 1
    try:
        result = check_gitlab(_gitlab_client(settings), _registry_paths(settings), ref=settings["gitlab"].get("ref"))
    except RegistrySourceError as e:
        _print_source_error(e)
        return 1
    project = result["project"]
    print(f"✅ GitLab project: {project['path']} ({project['visibility']})")
    registry_file = result["repository"]["registryFile"]
    if registry_file:
        print(f"   📄 Registry file: {registry_file['path']}")
    else:
        print("   ⚠️  Registry file not found; every component will be reported as new.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="figma-atoms",
        description="figma-atoms: Figma atomic component catalogue and registry diff",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", "-c", default="figma-atoms.config.json", help="Config path")
    parser.add_argument("--output", "-o", help="Output directory (default .figma-atoms)")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    strategy_help = "Registry matching: substring | residue | oracle"

    parse_p = sub.add_parser("parse", help="Figma → component catalogue")
    parse_p.add_argument("--file-key", help="Figma file key")
    parse_p.add_argument("--node-id", help="Limit to one node (e.g. 1:2)")

    check_p = sub.add_parser("check", help="Catalogue → registry diff",
        epilog="Examples:\n  figma-atoms check --components .figma-atoms/parse-result.json",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    check_p.add_argument("--components", required=True, help="parse-result.json or a JSON list of components")
    check_p.add_argument("--strategy", choices=["substring", "residue", "oracle"], help=strategy_help)

    pac_p = sub.add_parser("parse-and-check", help="Figma → catalogue → registry diff")
    pac_p.add_argument("--file-key", help="Figma file key")
    pac_p.add_argument("--node-id", help="Limit to one node (e.g. 1:2)")
    pac_p.add_argument("--strategy", choices=["substring", "residue", "oracle"], help=strategy_help)

    diff_p = sub.add_parser("diff", help="Offline diff from local files",
        epilog="Examples:\n  figma-atoms diff --document file.json --registry src/registry.ts --json",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    diff_p.add_argument("--document", required=True, help="Figma file or node JSON")
    diff_p.add_argument("--registry", help="Registry source file (missing → all components new)")
    diff_p.add_argument("--strategy", choices=["substring", "residue", "oracle"], help=strategy_help)
    diff_p.add_argument("--json", action="store_true", help="Print the report JSON to stdout")

    gen_p = sub.add_parser("generate", help="Generate a React component with OpenAI")
    gen_p.add_argument("--name", required=True, help="Component name")
    gen_p.add_argument("--structure", required=True, help="JSON file with the component structure")
    gen_p.add_argument("--directory", default="src/components", help="Directory inside the output dir")
    gen_p.add_argument("--raw", action="store_true", help="Keep the model reply as-is (no fence stripping)")

    commit_p = sub.add_parser("commit", help="Commit a component file to a new GitLab branch")
    commit_p.add_argument("--branch", required=True, help="New branch name")
    commit_p.add_argument("--file-path", required=True, help="Path inside the repository")
    commit_p.add_argument("--code-file", required=True, help="Local file with the content")
    commit_p.add_argument("--message", help="Commit message")
    commit_p.add_argument("--ref", help="Branch to fork from (default main)")

    sub.add_parser("test-gitlab", help="Verify GitLab access and registry location")
    return parser


COMMANDS = {
    "parse": cmd_parse,
    "check": cmd_check,
    "parse-and-check": cmd_parse_and_check,
    "diff": cmd_diff,
    "generate": cmd_generate,
    "commit": cmd_commit,
    "test-gitlab": cmd_test_gitlab,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    settings = resolve_settings(load_config(args.config))
    return handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())

"""
端到端管線測試：Figma JSON → 元件目錄 → registry diff。
"""
import pytest
from unittest.mock import MagicMock, patch

from figma_atoms.classifier import extract_catalogue
from figma_atoms.figma_reader import FigmaSourceError
from figma_atoms.pipeline import check_components, diff_catalogue, parse_and_check, parse_figma
from figma_atoms.registry import RegistryLookup, RegistrySourceError
from figma_atoms.records import Category

HOME = {
    "id": "1:1",
    "name": "HomeScreen",
    "type": "FRAME",
    "absoluteBoundingBox": {"x": 0, "y": 0, "width": 800, "height": 1200},
    "children": [
        {"id": "1:2", "name": "PrimaryButton", "type": "COMPONENT",
         "absoluteBoundingBox": {"x": 0, "y": 0, "width": 120, "height": 40}},
        {"id": "1:3", "name": "UserAvatar", "type": "COMPONENT",
         "absoluteBoundingBox": {"x": 0, "y": 0, "width": 48, "height": 48}},
    ],
}

FIGMA_FILE = {"name": "App", "version": "42", "lastModified": "2024-05-01T00:00:00Z", "document": HOME}


def test_home_screen_scenario():
    catalogue = extract_catalogue(HOME)
    assert [s.name for s in catalogue.screens] == ["HomeScreen"]
    assert [(c.name, c.category) for c in catalogue.components] == [
        ("PrimaryButton", Category.BUTTON),
        ("UserAvatar", Category.AVATAR),
    ]
    report = diff_catalogue(catalogue, "export const PRIMARYBUTTON = 1;")
    assert [m.component.name for m in report.existing_components] == ["PrimaryButton"]
    assert [c.name for c in report.new_components] == ["UserAvatar"]
    assert report.registry_checked


def test_registry_absent_scenario():
    children = [
        {"id": str(i), "name": f"Widget{i}", "type": "INSTANCE",
         "absoluteBoundingBox": {"width": 10, "height": 10}}
        for i in range(5)
    ]
    catalogue = extract_catalogue({"id": "0", "name": "Doc", "type": "DOCUMENT", "children": children})
    report = diff_catalogue(catalogue, None)
    assert report.existing_components == ()
    assert [c.name for c in report.new_components] == [f"Widget{i}" for i in range(5)]
    assert report.registry_checked is False


def test_rerun_is_byte_identical():
    first = diff_catalogue(extract_catalogue(HOME), "primarybutton").to_json()
    second = diff_catalogue(extract_catalogue(HOME), "primarybutton").to_json()
    assert first == second


def _figma_mock():
    figma = MagicMock()
    figma.get_file.return_value = FIGMA_FILE
    return figma


def test_parse_figma_returns_file_info():
    catalogue, file_info = parse_figma(_figma_mock(), "KEY")
    assert file_info == {"name": "App", "lastModified": "2024-05-01T00:00:00Z", "version": "42"}
    assert len(catalogue.components) == 2


@patch("figma_atoms.pipeline.locate_registry")
def test_parse_and_check_with_registry(mock_locate):
    mock_locate.return_value = RegistryLookup(path="src/registry.ts", content="PrimaryButton", available_paths=["src/registry.ts"])
    report = parse_and_check(_figma_mock(), MagicMock(), "KEY")
    data = report.to_dict()
    assert data["registryPath"] == "src/registry.ts"
    assert [c["name"] for c in data["components"]["existing"]] == ["PrimaryButton"]
    assert [c["name"] for c in data["components"]["new"]] == ["UserAvatar"]
    assert data["fileInfo"]["name"] == "App"
    assert [s["name"] for s in data["screens"]] == ["HomeScreen"]
    assert "availablePaths" not in data


@patch("figma_atoms.pipeline.locate_registry")
def test_parse_and_check_registry_missing(mock_locate):
    mock_locate.return_value = RegistryLookup(available_paths=["README.md"])
    data = parse_and_check(_figma_mock(), MagicMock(), "KEY").to_dict()
    assert data["registryChecked"] is False
    assert data["components"]["existing"] == []
    assert len(data["components"]["new"]) == 2
    assert data["availablePaths"] == ["README.md"]


@patch("figma_atoms.pipeline.locate_registry")
def test_parse_and_check_registry_unreachable(mock_locate):
    mock_locate.return_value = RegistryLookup(error=RegistrySourceError("gitlab down", status=502))
    data = parse_and_check(_figma_mock(), MagicMock(), "KEY").to_dict()
    assert data["registryChecked"] is False
    assert data["registryError"]["status"] == 502
    assert "availablePaths" not in data
    assert len(data["components"]["new"]) == 2


def test_figma_failure_propagates():
    figma = MagicMock()
    figma.get_file.side_effect = FigmaSourceError("Invalid token", status=403)
    gitlab = MagicMock()
    with pytest.raises(FigmaSourceError):
        parse_and_check(figma, gitlab, "KEY")
    gitlab.list_tree.assert_not_called()


@patch("figma_atoms.pipeline.locate_registry")
def test_check_components_passes_ref(mock_locate):
    mock_locate.return_value = RegistryLookup(available_paths=[])
    check_components([], MagicMock(), candidates=("a.ts",), ref="develop")
    assert mock_locate.call_args.args[1] == ("a.ts",)
    assert mock_locate.call_args.kwargs["ref"] == "develop"

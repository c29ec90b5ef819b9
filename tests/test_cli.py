import json
from unittest.mock import patch

import pytest
import yaml

import main

CONTROLLER_SOURCE = '''
@Controller("orders")
class OrdersController:
    @Get(":id")
    def find_one(self, id: str = Param("id")) -> dict:
        """Fetch one order."""
'''

GRAPH = {
    "units": [{
        "path": "src/api/v1/orders/orders.controller.ts",
        "classes": [{
            "name": "OrdersController",
            "decorators": [{"name": "Controller", "args": ["orders"]}],
            "methods": [{"name": "list", "decorators": ["Get"]}],
        }],
    }],
}


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src" / "orders").mkdir(parents=True)
    (tmp_path / "src" / "orders" / "orders_controller.py").write_text(CONTROLLER_SOURCE)
    return tmp_path


def _run(argv):
    with pytest.raises(SystemExit) as exc:
        main.main(argv)
    return exc.value.code


class TestMain:
    def test_python_project_to_json(self, project, tmp_path):
        output = tmp_path / "openapi.json"
        code = _run([str(project), "--title", "Orders", "--api-version", "1.0", "-o", str(output), "-q"])
        assert code == 0
        doc = json.loads(output.read_text())
        assert doc["info"]["title"] == "Orders"
        assert list(doc["paths"]) == ["orders/{id}"]
        assert doc["tags"] == [{"name": "Orders"}]

    def test_graph_to_yaml_with_versioning(self, tmp_path):
        graph = tmp_path / "graph.json"
        graph.write_text(json.dumps(GRAPH))
        output = tmp_path / "openapi.yaml"
        code = _run([str(graph), "--title", "Orders", "--api-version", "2", "--versioning",
                     "--format", "yaml", "-o", str(output), "-q"])
        assert code == 0
        doc = yaml.safe_load(output.read_text())
        assert list(doc["paths"]) == ["api/v1/orders"]
        assert doc["servers"] == [{"url": "/api/v1", "description": "API V1"}]

    def test_config_file(self, project, tmp_path):
        config = tmp_path / "autodocs.yaml"
        config.write_text("title: From File\nversion: '3.1'\nincludeSecurity: false\n")
        output = tmp_path / "out.json"
        assert _run([str(project), "--config", str(config), "-o", str(output), "-q"]) == 0
        doc = json.loads(output.read_text())
        assert doc["info"] == {"title": "From File", "version": "3.1"}
        assert doc["components"]["securitySchemes"] == {}

    def test_missing_title_is_configuration_error(self, project, monkeypatch):
        monkeypatch.delenv("AUTODOCS_TITLE", raising=False)
        assert _run([str(project), "--api-version", "1.0", "-q"]) == 2

    def test_missing_target(self, tmp_path):
        assert _run([str(tmp_path / "nope"), "--title", "T", "--api-version", "1", "-q"]) == 1

    def test_git_target_cloned_and_removed(self, project, tmp_path):
        output = tmp_path / "out.json"
        with patch("main.clone_repo", return_value=str(project)) as clone, \
                patch("main.shutil.rmtree") as rmtree:
            code = _run(["https://example.com/org/orders.git", "--title", "T", "--api-version", "1",
                         "-o", str(output), "-q"])
        assert code == 0
        clone.assert_called_once_with("https://example.com/org/orders.git")
        rmtree.assert_called_once()
        assert "orders/{id}" in json.loads(output.read_text())["paths"]

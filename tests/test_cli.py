import json
from unittest.mock import patch

from click.testing import CliRunner

from autoswagger.cli import main
from autoswagger.errors import OutputWriteError


def _write_config(tmp_path, **extra) -> str:
    lines = [
        "title: Shop API",
        "routes: sample_app.routes:ROUTES",
        f"output_file: {tmp_path / 'swagger.json'}",
        "scan:",
        "  models: [sample_app.models]",
        "  model_namespaces: [sample_app.models]",
    ]
    lines.extend(f"{key}: {value}" for key, value in extra.items())
    path = tmp_path / "autoswagger.yaml"
    path.write_text("\n".join(lines) + "\n")
    return str(path)


class TestCliGenerate:
    def test_generate_json(self, tmp_path):
        config = _write_config(tmp_path)
        runner = CliRunner()
        result = runner.invoke(main, ["generate", "--config", config])

        assert result.exit_code == 0, result.output
        assert "Generating OpenAPI documentation..." in result.output
        target = tmp_path / "swagger.json"
        assert f"OpenAPI documentation generated successfully at: {target}" in result.output
        document = json.loads(target.read_text(encoding="utf-8"))
        assert document["info"]["title"] == "Shop API"
        assert "/api/products" in document["paths"]

    def test_output_option_overrides_config(self, tmp_path):
        config = _write_config(tmp_path)
        output = tmp_path / "docs" / "openapi.yaml"
        runner = CliRunner()
        result = runner.invoke(main, ["generate", "--config", config, "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert output.read_text(encoding="utf-8").startswith("openapi: 3.0.0")
        assert not (tmp_path / "swagger.json").exists()

    def test_write_failure(self, tmp_path):
        config = _write_config(tmp_path)
        runner = CliRunner()
        with patch("autoswagger.cli.save_document", side_effect=OutputWriteError(tmp_path / "swagger.json", "denied")):
            result = runner.invoke(main, ["generate", "--config", config])

        assert result.exit_code == 1
        assert "Failed to save OpenAPI documentation to file" in result.output
        assert "denied" in result.output

    def test_missing_config(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["generate", "--config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 2
        assert "Configuration file not found" in result.output

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(main, ["generate", "--help"])
        assert result.exit_code == 0
        assert "--output" in result.output

"""
Tests for loading config.yaml and per-form form.yaml files.
"""

import textwrap

import pytest

from formflow.config.loader import (
    clear_cache,
    list_available_forms,
    load_all_forms,
    load_app_config,
    load_form,
)
from formflow.config.schema import AppConfig, EmailProvider
from formflow.exceptions import FormConfigurationError
from formflow.models import ConditionalOperator, StepType

FORM_YAML = textwrap.dedent("""
    name: Survey
    status: published
    steps:
      - id: q1
        type: multipleChoice
        display:
          messages:
            - text: Pick one
        input:
          type: choice
          choices:
            - {id: a, label: A, value: a}
        collect:
          variableName: pick
      - id: q2
        type: stringInput
        display:
          messages:
            - text: "Why {pick}?"
        conditionalLogic:
          showIf:
            - {variableName: pick, operator: equals, value: a}
""")


@pytest.fixture(autouse=True)
def _clear_form_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def forms_dir(tmp_path):
    base = tmp_path / "forms"
    (base / "survey").mkdir(parents=True)
    (base / "survey" / "form.yaml").write_text(FORM_YAML)
    (base / "empty-dir").mkdir()
    return base


# ─── App Config ───────────────────────────────────────────────────────


class TestLoadAppConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_app_config(tmp_path / "nope.yaml")
        assert config == AppConfig()
        assert config.actions.timeout_seconds == 30.0

    def test_reads_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(textwrap.dedent("""
            environment: production
            email:
              provider: sendgrid
            actions:
              timeout_seconds: 5
        """))
        config = load_app_config(path)
        assert config.environment == "production"
        assert config.email.provider == EmailProvider.SENDGRID
        assert config.actions.timeout_seconds == 5

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("environment: staging\n")
        monkeypatch.setenv("FORMFLOW_CONFIG", str(path))
        assert load_app_config().environment == "staging"

    def test_invalid_environment(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("environment: moon\n")
        with pytest.raises(FormConfigurationError):
            load_app_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("environment: [unclosed\n")
        with pytest.raises(FormConfigurationError) as exc_info:
            load_app_config(path)
        assert exc_info.value.config_path == str(path)


# ─── Forms ────────────────────────────────────────────────────────────


class TestLoadForm:

    def test_loads_and_validates(self, forms_dir):
        form = load_form("survey", forms_dir=forms_dir)
        assert form.id == "survey"
        assert form.public_url == "survey"
        assert [s.id for s in form.steps] == ["q1", "q2"]
        assert form.steps[0].type == StepType.MULTIPLE_CHOICE
        assert form.steps[0].variable_name == "pick"
        assert form.steps[1].conditional_logic.show_if[0].operator == ConditionalOperator.EQUALS

    def test_cached(self, forms_dir):
        first = load_form("survey", forms_dir=forms_dir)
        assert load_form("survey", forms_dir=forms_dir) is first

    def test_missing_form(self, forms_dir):
        with pytest.raises(FormConfigurationError) as exc_info:
            load_form("ghost", forms_dir=forms_dir)
        assert exc_info.value.form_id == "ghost"

    def test_schema_error(self, forms_dir):
        (forms_dir / "broken").mkdir()
        (forms_dir / "broken" / "form.yaml").write_text("steps: 12\n")
        with pytest.raises(FormConfigurationError):
            load_form("broken", forms_dir=forms_dir)

    def test_non_mapping_yaml(self, forms_dir):
        (forms_dir / "listy").mkdir()
        (forms_dir / "listy" / "form.yaml").write_text("- a\n- b\n")
        with pytest.raises(FormConfigurationError, match="mapping"):
            load_form("listy", forms_dir=forms_dir)

    def test_explicit_public_url_is_kept(self, forms_dir):
        (forms_dir / "renamed").mkdir()
        (forms_dir / "renamed" / "form.yaml").write_text(
            "name: R\npublicUrl: elsewhere\nsteps: []\n"
        )
        assert load_form("renamed", forms_dir=forms_dir).public_url == "elsewhere"


class TestListForms:

    def test_lists_dirs_with_form_yaml(self, forms_dir):
        assert list_available_forms(forms_dir) == ["survey"]

    def test_missing_dir(self, tmp_path):
        assert list_available_forms(tmp_path / "absent") == []

    def test_load_all(self, forms_dir):
        assert [f.name for f in load_all_forms(forms_dir)] == ["Survey"]


class TestBundledForms:
    """The example forms shipped in forms/ load without lint errors."""

    def test_feedback_form(self):
        from formflow.authoring.linter import lint_form

        form = load_form("feedback")
        assert lint_form(form.steps).is_valid

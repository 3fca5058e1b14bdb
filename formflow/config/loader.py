"""
Configuration loader for forms and application settings.

Loads config.yaml into ``AppConfig`` and each form's
forms/<public_url>/form.yaml into a validated ``Form``. Form definitions
are cached per public URL; authoring problems found by the linter are
logged as warnings and never block loading.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from formflow.authoring.linter import lint_form
from formflow.config.schema import AppConfig
from formflow.exceptions import FormConfigurationError
from formflow.models import Form

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FORMFLOW_CONFIG"

# Module-level cache: public_url -> Form
_loaded_forms: dict[str, Form] = {}


def find_forms_dir() -> Path:
    """Locate the forms/ directory relative to the working directory or this file."""
    cwd_candidate = Path.cwd() / "forms"
    if cwd_candidate.is_dir():
        return cwd_candidate

    current = Path(__file__).resolve()
    for parent in current.parents:
        candidate = parent / "forms"
        if candidate.is_dir():
            return candidate
    raise FileNotFoundError(
        "Could not find 'forms/' directory. "
        "Ensure you're running from the project root."
    )


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise FormConfigurationError(
            f"Invalid YAML in {path}: {e}", config_path=str(path)
        ) from e
    if raw is None:
        raise FormConfigurationError(f"Config file is empty: {path}", config_path=str(path))
    if not isinstance(raw, dict):
        raise FormConfigurationError(
            f"Config file must contain a mapping: {path}", config_path=str(path)
        )
    return raw


def load_app_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    Load the application config.

    Args:
        path: Explicit config.yaml path. Falls back to $FORMFLOW_CONFIG,
              then ./config.yaml. A missing file yields the defaults.

    Raises:
        FormConfigurationError: If the file is not valid YAML or fails
            schema validation.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or "config.yaml"
    path = Path(path)

    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return AppConfig()

    raw = _read_yaml(path)
    try:
        return AppConfig(**raw)
    except ValidationError as e:
        raise FormConfigurationError(
            f"Invalid app config {path}:\n{e}", config_path=str(path)
        ) from e


def load_form(
    public_url: str,
    path: Optional[str | Path] = None,
    forms_dir: Optional[str | Path] = None,
) -> Form:
    """
    Load and validate a form definition.

    Args:
        public_url: The form's public identifier (e.g. 'feedback').
        path: Optional explicit path to form.yaml.
        forms_dir: Directory holding one sub-directory per form.
                   Defaults to the discovered forms/ directory.

    Raises:
        FormConfigurationError: If the file is missing or invalid.
    """
    if public_url in _loaded_forms:
        return _loaded_forms[public_url]

    if path is None:
        base = Path(forms_dir) if forms_dir else find_forms_dir()
        path = base / public_url / "form.yaml"
    path = Path(path)

    if not path.exists():
        raise FormConfigurationError(
            f"Form not found: {path}\n"
            f"Create forms/{public_url}/form.yaml to define this form.",
            form_id=public_url,
            config_path=str(path),
        )

    raw = _read_yaml(path)
    # The directory name is the public URL unless the file says otherwise
    if "publicUrl" not in raw and "public_url" not in raw:
        raw["publicUrl"] = public_url
    raw.setdefault("id", public_url)

    try:
        form = Form.model_validate(raw)
    except ValidationError as e:
        raise FormConfigurationError(
            f"Invalid form '{public_url}':\n{e}",
            form_id=public_url,
            config_path=str(path),
        ) from e

    report = lint_form(form.steps)
    for error in report.errors:
        logger.warning(error, extra={"form_id": form.id})

    _loaded_forms[public_url] = form
    return form


def list_available_forms(forms_dir: Optional[str | Path] = None) -> list[str]:
    """List all forms that have a form.yaml file."""
    if forms_dir is not None:
        base = Path(forms_dir)
        if not base.is_dir():
            return []
    else:
        try:
            base = find_forms_dir()
        except FileNotFoundError:
            return []

    forms = []
    for entry in base.iterdir():
        if entry.is_dir() and (entry / "form.yaml").exists():
            forms.append(entry.name)
    return sorted(forms)


def load_all_forms(forms_dir: Optional[str | Path] = None) -> list[Form]:
    return [load_form(name, forms_dir=forms_dir) for name in list_available_forms(forms_dir)]


def clear_cache() -> None:
    """Clear the form cache. Useful for testing."""
    _loaded_forms.clear()

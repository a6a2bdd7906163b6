"""Site behavior configuration (pantheon.yml) loading and layout detection."""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from ..constants import PANTHEON_YML, WEB_ROOT
from ..models import DocrootLayout
from .exceptions import ConfigurationError

logger = structlog.get_logger()


class SiteBehaviorConfig(BaseModel):
    """Platform behavior settings for a site; unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    api_version: int = 1
    build_step: bool = False
    web_docroot: bool = False


def read_site_config_data(path: Path) -> dict[str, Any]:
    """Read raw pantheon.yml data, keeping key order.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_site_config(site_path: Path | str) -> SiteBehaviorConfig:
    """Load pantheon.yml from a site checkout; a missing file yields defaults."""
    path = Path(site_path) / PANTHEON_YML
    if not path.exists():
        logger.info("No site behavior file found, using defaults", path=str(path))
        return SiteBehaviorConfig()

    data = read_site_config_data(path)
    try:
        return SiteBehaviorConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid site configuration in {path}: {e}") from e


def detect_layout(site_path: Path | str) -> DocrootLayout:
    """Compute the docroot layout of a site checkout once."""
    site_path = Path(site_path)
    config = load_site_config(site_path)
    layout = DocrootLayout(root=site_path, drupal_subpath=WEB_ROOT if config.web_docroot else "")
    logger.info(
        "Detected docroot layout",
        site_path=str(site_path),
        webroot=layout.is_webroot,
        drupal_root=str(layout.drupal_root),
    )
    return layout


def enable_build_step(path: Path) -> bool:
    """Set ``build_step: true`` in a pantheon.yml file.

    Returns:
        True if the file was rewritten, False if the flag was already set
    """
    data = read_site_config_data(path)
    if data.get("build_step") is True:
        return False

    data["build_step"] = True
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
    return True

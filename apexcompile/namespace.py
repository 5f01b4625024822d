"""Namespace resolution for the inventory query.

Only classes and triggers owned by the project's namespace (or with no
namespace at all) are compiled. Units from managed packages installed in
the same org are left out.
"""

import json
import logging
import re
from pathlib import Path
from typing import Optional

from apexcompile.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_FILE = Path("sfdx-project.json")

# Salesforce namespace prefixes are alphanumeric with underscores
_NAMESPACE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def read_namespace(project_file: Path = DEFAULT_PROJECT_FILE) -> Optional[str]:
    """Read the namespace from an sfdx-project.json manifest.

    A missing or unreadable manifest is not an error: the project is
    treated as unnamespaced.

    Args:
        project_file: Path to the sfdx-project.json manifest

    Returns:
        Namespace prefix, or None
    """
    try:
        project = json.loads(Path(project_file).read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.debug(f"No project manifest at {project_file}; assuming no namespace")
        return None
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read {project_file}: {e}; assuming no namespace")
        return None

    if not isinstance(project, dict):
        return None
    return project.get("namespace") or None


def namespace_filter(namespace: Optional[str]) -> str:
    """Build the SOQL WHERE clause that scopes units to a namespace.

    Raises:
        ConfigError: If the namespace is not a valid prefix
    """
    if namespace:
        if not _NAMESPACE_RE.match(namespace):
            raise ConfigError(f"Invalid namespace prefix: {namespace!r}")
        return f"WHERE (NamespacePrefix = '{namespace}' OR NamespacePrefix = null)"
    return "WHERE NamespacePrefix = null"

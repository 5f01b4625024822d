"""
apexcompile - Bulk check-only compile of Apex classes and triggers

Stages every class and trigger of an org into a Tooling API
MetadataContainer, submits a check-only ContainerAsyncRequest and
polls it until the org reports a terminal state.
"""

__version__ = "0.1.0"


__all__ = ["CompileConfig", "load_config", "get_apexcompile_home"]

from .config import CompileConfig, load_config, get_apexcompile_home

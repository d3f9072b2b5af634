"""Configuration loading and validation.

Usage:
    config = load()                               # defaults + optional apex-coverage.yaml
    config = load("ci/apex-coverage.yaml")        # raises ConfigError if missing
    config = config.with_overrides(org_alias="uat")
    generate_template("apex-coverage.yaml")       # writes example file to disk
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = "apex-coverage.yaml"
DEFAULT_ORG_ALIAS = "defaultOrg"
DEFAULT_WAIT_MINUTES = 10
DEFAULT_THRESHOLD = 75.0
DEFAULT_SF_COMMAND = "sf"

MODE_ADVISORY = "advisory"
MODE_ENFORCING = "enforcing"
MODES = (MODE_ADVISORY, MODE_ENFORCING)

ENV_ORG_ALIAS = "SF_TARGET_ORG"
ENV_MODE = "APEX_COVERAGE_MODE"
ENV_SF_COMMAND = "APEX_COVERAGE_SF"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Config:
    org_alias: str = DEFAULT_ORG_ALIAS
    wait_minutes: int = DEFAULT_WAIT_MINUTES
    threshold: float = DEFAULT_THRESHOLD
    mode: str = MODE_ADVISORY
    sf_command: str = DEFAULT_SF_COMMAND

    @property
    def enforcing(self) -> bool:
        return self.mode == MODE_ENFORCING

    def with_overrides(self, **values) -> "Config":
        """Return a copy with every non-None value in *values* applied.

        Empty strings count as "not given" so that an omitted positional
        argument never replaces the resolved alias.
        """
        changes = {k: v for k, v in values.items() if v is not None and v != ""}
        if not changes:
            return self
        config = replace(self, **changes)
        _validate(config)
        return config


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str | None = None) -> Config:
    """Resolve the run settings once, from file, environment and defaults.

    When *config_path* is None the default ``apex-coverage.yaml`` is read if it
    exists; an explicitly requested file must exist. Environment variables
    SF_TARGET_ORG, APEX_COVERAGE_MODE and APEX_COVERAGE_SF override file values.

    Raises:
        ConfigError: if the requested file is missing or malformed, or any
                     value is invalid.
    """
    explicit = config_path is not None
    path = Path(config_path if explicit else DEFAULT_CONFIG_PATH)

    raw: dict = {}
    if path.exists():
        raw = _read_yaml(path)
    elif explicit:
        raise ConfigError(
            f"Config file not found: '{path}'\n"
            "Run `apex-coverage init` to generate a template."
        )

    org = raw.get("org") or {}
    tests = raw.get("tests") or {}
    coverage = raw.get("coverage") or {}
    if not all(isinstance(section, dict) for section in (org, tests, coverage)):
        raise ConfigError(
            f"'{path}': the 'org', 'tests' and 'coverage' sections must be mappings."
        )

    org_alias = os.environ.get(ENV_ORG_ALIAS) or org.get("alias", DEFAULT_ORG_ALIAS)
    mode = os.environ.get(ENV_MODE) or coverage.get("mode", MODE_ADVISORY)
    sf_command = os.environ.get(ENV_SF_COMMAND) or raw.get("sf_command", DEFAULT_SF_COMMAND)

    config = Config(
        org_alias=str(org_alias or "").strip(),
        wait_minutes=_coerce(tests.get("wait_minutes", DEFAULT_WAIT_MINUTES), int, "tests.wait_minutes"),
        threshold=_coerce(coverage.get("threshold", DEFAULT_THRESHOLD), float, "coverage.threshold"),
        mode=str(mode or "").strip().lower(),
        sf_command=str(sf_command or "").strip(),
    )
    _validate(config)
    return config


def _read_yaml(path: Path) -> dict:
    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{path}' must be a YAML mapping at the top level.")
    return raw


def _coerce(value, kind, name: str):
    # bool is an int subclass; "wait_minutes: yes" is a mistake, not 1
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a number, got {value!r}")
    if kind is int:
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"'{name}' must be a whole number, got {value!r}") from exc
        if not number.is_integer():
            raise ConfigError(f"'{name}' must be a whole number, got {value!r}")
        return int(number)
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{name}' must be a number, got {value!r}") from exc


def _validate(config: Config) -> None:
    """Raise ConfigError listing every invalid field."""
    errors: list[str] = []

    if not config.org_alias:
        errors.append(
            f"  - 'org.alias' is empty (or set the {ENV_ORG_ALIAS} environment variable)"
        )
    if config.wait_minutes <= 0:
        errors.append(f"  - 'tests.wait_minutes' must be positive, got {config.wait_minutes}")
    if not 0 <= config.threshold <= 100:
        errors.append(f"  - 'coverage.threshold' must be between 0 and 100, got {config.threshold}")
    if config.mode not in MODES:
        errors.append(
            f"  - 'coverage.mode' must be one of {', '.join(MODES)}, got '{config.mode}'"
        )
    if not config.sf_command:
        errors.append("  - 'sf_command' is empty")

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
org:
  alias: "defaultOrg"          # sf org alias (or set SF_TARGET_ORG)

tests:
  wait_minutes: 10             # --wait budget for `sf apex run test`

coverage:
  threshold: 75                # org-wide coverage policy, in percent
  mode: "advisory"             # advisory: warn only | enforcing: exit 1 below threshold

# sf_command: "sf"             # path to the Salesforce CLI executable
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template apex-coverage.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists.
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")

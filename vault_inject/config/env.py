"""Environment variable expansion for configuration values.

Handles ``${VAR}`` and ``${VAR:-default}`` expansion in string values.
"""

from __future__ import annotations

import os
import re
from typing import Any, Mapping, Optional

# ${VAR_NAME} or ${VAR_NAME:-fallback}
_ENV_VAR_RE = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def expand_env_vars(value: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Recursively expand ``${VAR}`` references in string values.

    - If the env var is not set and there is no fallback, the placeholder
      is left unchanged.
    - Non-string leaves are returned as-is.
    - Dicts and lists are walked recursively.
    """
    env = os.environ if environ is None else environ
    if isinstance(value, str):
        def _sub(m: "re.Match[str]") -> str:
            if m.group(1) in env:
                return env[m.group(1)]
            return m.group(2) if m.group(2) is not None else m.group(0)

        return _ENV_VAR_RE.sub(_sub, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, env) for item in value]
    return value

"""Run RuboCop over a rewritten formula and return its corrected text."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path

from .config import Settings
from .console import log_debug
from .errors import NormalizerError, NormalizerUnavailableError
from .utils import format_cli_command

# RuboCop exits 0 when clean and 1 when offenses remain; 2 means it crashed.
_RUBOCOP_ERROR_STATUS = 2


def rubocop_command(rubocop: str, config: Path, target: Path) -> list:
    return [rubocop, "-c", str(config), "-x", str(target)]


def normalize(text: str, *, name: str, settings: Settings) -> str:
    config = Path(settings.rubocop_config).expanduser()
    if not config.is_file():
        raise NormalizerUnavailableError(f"can't find rubocop config: {config}")
    rubocop = shutil.which(settings.rubocop)
    if not rubocop:
        raise NormalizerUnavailableError(f"can't find rubocop executable: {settings.rubocop}")

    filename = name if name.endswith(".rb") else f"{name}.rb"
    with tempfile.TemporaryDirectory(prefix="formula_sync_") as tmp:
        target = Path(tmp) / filename
        target.write_text(text, encoding="utf-8")
        cmd = rubocop_command(rubocop, config, target)
        log_debug(f"exec {format_cli_command(cmd)}")
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise NormalizerUnavailableError(f"failed to run rubocop: {exc}") from exc
        output = (proc.stdout or "").strip()
        if output:
            log_debug(output)
        if proc.returncode >= _RUBOCOP_ERROR_STATUS:
            suffix = f": {output.splitlines()[-1]}" if output else ""
            raise NormalizerError(f"rubocop failed with exit code {proc.returncode}{suffix}")
        return target.read_text(encoding="utf-8")

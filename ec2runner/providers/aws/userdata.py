"""User-data script that turns a fresh EC2 instance into a GitHub runner.

User data scripts are run as the root user by cloud-init on first boot.

Two mutually exclusive modes:

- preinstalled: the runner (and its dependencies) already lives in the AMI
  under ``runner_home_dir``; the script only changes into it.
- fresh: the script downloads and unpacks the runner release matching the
  machine architecture.

The optional pre-runner snippet runs right after entering the runner
directory, before any download. Both modes then register the runner with
the repository and start it.

Warning:
    Every input is interpolated into shell text verbatim. Nothing is quoted
    or escaped, so the token, label, home directory and pre-runner snippet
    must come from trusted sources (the workflow that invokes ec2runner).
"""

from __future__ import annotations

import base64
from collections.abc import Sequence

from ec2runner.constants import (
    GITHUB_URL,
    RUNNER_ARCHITECTURES,
    RUNNER_DIR,
    RUNNER_RELEASES_URL,
    RUNNER_VERSION,
    BootMode,
)


def boot_mode(runner_home_dir: str | None) -> BootMode:
    return BootMode.PREINSTALLED if runner_home_dir else BootMode.FRESH


def _arch_case() -> str:
    arms: dict[str, list[str]] = {}
    for machine, arch in RUNNER_ARCHITECTURES.items():
        arms.setdefault(arch, []).append(machine)
    branches = " ".join(
        f'{"|".join(machines)}) ARCH="{arch}" ;;' for arch, machines in arms.items()
    )
    fail = '*) echo "Unsupported architecture: $(uname -m)" >&2; exit 1 ;;'
    return f"case $(uname -m) in {branches} {fail} esac && export RUNNER_ARCH=${{ARCH}}"


def _pre_runner_lines(pre_runner_script: str | None) -> list[str]:
    if not pre_runner_script:
        return []
    return [
        f'echo "{pre_runner_script}" > pre-runner-script.sh',
        "source pre-runner-script.sh",
    ]


def _download_lines(runner_version: str) -> list[str]:
    tarball = f"actions-runner-linux-${{RUNNER_ARCH}}-{runner_version}.tar.gz"
    return [
        _arch_case(),
        f"curl -O -L {RUNNER_RELEASES_URL}/v{runner_version}/{tarball}",
        f"tar xzf ./{tarball}",
    ]


def render_user_data(
    token: str,
    label: str,
    *,
    repository: str,
    runner_home_dir: str | None = None,
    pre_runner_script: str | None = None,
    runner_version: str = RUNNER_VERSION,
) -> tuple[str, ...]:
    """Render the boot script, one shell statement per line.

    The result depends on the arguments only, so identical inputs give
    identical scripts.

    Args:
        token: Short-lived runner registration token.
        label: Label that binds the runner to the waiting job.
        repository: ``owner/repo`` the runner registers with.
        runner_home_dir: Runner directory inside the AMI. Selects the
            preinstalled mode when set.
        pre_runner_script: Shell snippet run before the runner is configured.
        runner_version: Runner release downloaded in fresh mode.

    Returns:
        The script lines, starting with the interpreter line and ending with
        the runner start command.
    """
    lines = ["#!/bin/bash"]

    match boot_mode(runner_home_dir):
        case BootMode.PREINSTALLED:
            lines.append(f'cd "{runner_home_dir}"')
            lines.extend(_pre_runner_lines(pre_runner_script))
        case BootMode.FRESH:
            # snippet precedes the download; it may install curl or set a proxy
            lines.append(f"mkdir {RUNNER_DIR} && cd {RUNNER_DIR}")
            lines.extend(_pre_runner_lines(pre_runner_script))
            lines.extend(_download_lines(runner_version))

    lines.append("export RUNNER_ALLOW_RUNASROOT=1")
    lines.append(
        f"./config.sh --url {GITHUB_URL}/{repository} --token {token} --labels {label}"
    )
    lines.append("./run.sh")
    return tuple(lines)


def encode_user_data(lines: Sequence[str]) -> str:
    """Join script lines and base64-encode them for RunInstances."""
    return base64.b64encode("\n".join(lines).encode()).decode()

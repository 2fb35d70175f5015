"""Audit script reporting what applying the world manifest would change."""

from __future__ import annotations

import argparse
import datetime as dt
import json
from pathlib import Path

from config import get_settings
from observability.logging import configure_logging
from registry.manifest import load_manifest, plan_manifest
from security.manager import AccessControl


def audit_callers(core: AccessControl) -> list[str]:
    findings: list[str] = []
    callers = list(core.identity.known_callers())
    if not any(core.identity.is_account(caller) for caller in callers):
        findings.append("No account callers configured; namespace registration will be refused.")
    for caller in callers:
        if not core.identity.label(caller):
            findings.append(f"Caller '{hex(caller)}' has no label.")
    return findings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--manifest", type=Path, default=Path(settings.manifest_path))
    parser.add_argument(
        "--security-config", type=Path, default=Path(settings.security_config_path)
    )
    args = parser.parse_args()
    configure_logging(settings.log_level)

    core = AccessControl(args.security_config, default_namespace=settings.default_namespace)
    manifest = load_manifest(args.manifest)
    plan = plan_manifest(core, manifest)
    report = {
        "project": settings.project_name,
        "version": settings.version,
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        "manifest": str(args.manifest),
        "caller_findings": audit_callers(core),
        "plan": plan.as_dict(),
    }
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()

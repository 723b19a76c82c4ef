from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from pausewatch import config
from pausewatch.models import BadPermission, PermissionAudit, PermissionEntry
from pausewatch.utils import skip_header

logger = logging.getLogger(__name__)


def iter_permissions(lines: Iterable[str]) -> Iterator[PermissionEntry]:
    for raw in skip_header(lines):
        line = raw.strip()
        if not line:
            continue
        fields = line.split(",")
        if len(fields) != 3:
            logger.debug("Skipping malformed permissions line: %r", line)
            continue
        package, maintainer, code = (field.strip() for field in fields)
        yield PermissionEntry(package=package, maintainer=maintainer, code=code, line=line)


class PermissionAuditor:
    """Flags sentinel maintainers (``NEEDHELP``, ``HANDOFF``) holding more than comaint."""

    def __init__(
        self,
        flagged: Sequence[str] = config.DEFAULT_FLAGGED_MAINTAINERS,
        *,
        allowed_code: str = config.COMAINTAINER_CODE,
    ) -> None:
        self.flagged = frozenset(flagged)
        self.allowed_code = allowed_code

    def check(self, entry: PermissionEntry) -> BadPermission | None:
        if entry.maintainer not in self.flagged or entry.code == self.allowed_code:
            return None
        return BadPermission(
            maintainer_state=entry.maintainer,
            raw_line=entry.line,
            package=entry.package,
            code=entry.code,
        )

    def audit(self, lines: Iterable[str]) -> PermissionAudit:
        result = PermissionAudit()
        for entry in iter_permissions(lines):
            result.total += 1
            violation = self.check(entry)
            if violation is not None:
                result.violations.append(violation)
        logger.info(
            "Audited %d permission entries, %d violations", result.total, len(result.violations)
        )
        return result

    def audit_text(self, text: str) -> PermissionAudit:
        return self.audit(text.splitlines())

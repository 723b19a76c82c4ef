from __future__ import annotations

import pytest

from pausewatch.models import BadPermission
from pausewatch.permissions import PermissionAuditor, iter_permissions

PERMS_HEADER = """File:        06perms.txt
Description: CSV file of upload permission to the CPAN per namespace
Columns:     package,userid,permission
Line-Count:  4

"""


@pytest.mark.parametrize(
    ("line", "violations"),
    [
        ("Some::Pkg,NEEDHELP,c", 0),
        ("Some::Pkg,NEEDHELP,f", 1),
        ("Some::Pkg,NEEDHELP,m", 1),
        ("Some::Pkg,HANDOFF,f", 1),
        ("Some::Pkg,HANDOFF,c", 0),
        ("Some::Pkg,ALICE,f", 0),
        ("Some::Pkg,ALICE,m", 0),
    ],
)
def test_audit_single_entry(line: str, violations: int) -> None:
    audit = PermissionAuditor().audit([line])
    assert audit.total == 1
    assert len(audit.violations) == violations


def test_violation_details() -> None:
    audit = PermissionAuditor().audit(["Some::Pkg,NEEDHELP,f"])
    assert audit.violations == [
        BadPermission(
            maintainer_state="NEEDHELP",
            raw_line="Some::Pkg,NEEDHELP,f",
            package="Some::Pkg",
            code="f",
        )
    ]
    assert audit.exit_code() == 1


def test_audit_text_with_header() -> None:
    text = PERMS_HEADER + "\n".join(
        ["Foo,ALICE,f", "Foo,NEEDHELP,c", "Bar,HANDOFF,m", "malformed line"]
    )
    audit = PermissionAuditor().audit_text(text)
    assert audit.total == 3
    assert audit.clean == 2
    assert [v.package for v in audit.violations] == ["Bar"]


def test_custom_flagged_maintainers() -> None:
    auditor = PermissionAuditor(["ADOPTME"])
    audit = auditor.audit(["Foo,ADOPTME,f", "Foo,NEEDHELP,f"])
    assert [v.maintainer_state for v in audit.violations] == ["ADOPTME"]


def test_iter_permissions_strips_fields() -> None:
    entries = list(iter_permissions(["Foo , ALICE , f", "", "a,b"]))
    assert len(entries) == 1
    assert (entries[0].package, entries[0].maintainer, entries[0].code) == ("Foo", "ALICE", "f")


def test_clean_audit_exit_code() -> None:
    audit = PermissionAuditor().audit(["Foo,ALICE,f"])
    assert audit.clean == 1
    assert audit.exit_code() == 0

from __future__ import annotations

import pytest

from transit_enrichment.errors import IOFailure, MalformedRule
from transit_enrichment.models import ObjectType, RuleDirection
from transit_enrichment.rules import (
    CodeRule,
    DurationOverride,
    ForcedRemoval,
    ForcedTransfer,
    MalformedLine,
    read_code_rules,
    read_transfer_rules,
)


def test_transfer_rules_header_comments_and_blank_lines(write_rules):
    path = write_rules(
        "rules.txt",
        """
        rule_type,from_stop_id,to_stop_id,transfer_time,direction
        # platform links

        add, sp_1 , sp_3, 90
        REMOVE,sp_1,sp_2,,
        override,sp_2,sp_3,45,ONEWAY
        """,
    )
    rules = read_transfer_rules([path])

    assert [type(r) for r in rules] == [ForcedTransfer, ForcedRemoval, DurationOverride]
    add, remove, override = rules
    assert (add.from_stop_id, add.to_stop_id, add.transfer_time) == ("sp_1", "sp_3", 90)
    assert add.direction is RuleDirection.BOTH
    assert remove.direction is RuleDirection.BOTH
    assert override.direction is RuleDirection.ONEWAY
    assert override.source.line == 6
    assert str(add.source) == f"{path}:4"


def test_later_record_replaces_and_moves_to_the_end(write_rules):
    first = write_rules("a.txt", "add,a,b,10\nadd,a,c,20\n")
    second = write_rules("b.txt", "add,b,a,30\n")
    rules = read_transfer_rules([first, second])

    assert [(r.from_stop_id, r.to_stop_id, r.transfer_time) for r in rules] == [
        ("a", "c", 20),
        ("b", "a", 30),
    ]


def test_oneway_and_both_rules_do_not_collide(write_rules):
    path = write_rules(
        "rules.txt",
        "add,a,b,10\nadd,a,b,20,oneway\nadd,b,a,30,oneway\nremove,b,a,,\n",
    )
    rules = read_transfer_rules([path])

    # the remove replaces the first (unordered) add, oneway records are kept apart
    assert [r.key() for r in rules] == [
        ("oneway", "a", "b"),
        ("oneway", "b", "a"),
        ("both", "a", "b"),
    ]
    assert isinstance(rules[-1], ForcedRemoval)


def test_no_rule_files_is_empty():
    assert read_transfer_rules([]) == []
    assert read_code_rules([]) == []


@pytest.mark.parametrize(
    "line, fragment",
    [
        ("add,a,b", "expected 4-5 fields, got 3"),
        ("add,a,b,10,both,extra", "expected 4-5 fields, got 6"),
        ("merge,a,b,10", "rule_type"),
        ("add,a,b,-5", "transfer_time"),
        ("add,a,b,9.5", "transfer_time"),
        ("override,a,b,", "transfer_time"),
        ("add,,b,10", "from_stop_id"),
        ("add,a,b,10,sideways", "direction"),
    ],
)
def test_malformed_transfer_rule_raises(write_rules, line, fragment):
    path = write_rules("rules.txt", f"add,x,y,1\n{line}\nadd,y,z,1\n")
    with pytest.raises(MalformedRule) as excinfo:
        read_transfer_rules([path])

    assert excinfo.value.path == path
    assert excinfo.value.line == 2
    assert fragment in excinfo.value.reason
    assert isinstance(excinfo.value, ValueError)


def test_missing_rule_file_is_io_failure(tmp_path):
    with pytest.raises(IOFailure) as excinfo:
        read_transfer_rules([tmp_path / "missing.txt"])
    assert excinfo.value.path == tmp_path / "missing.txt"


def test_non_utf8_rule_file_is_io_failure(tmp_path):
    path = tmp_path / "latin1.txt"
    path.write_bytes("add,gare,\xe9tape,10\n".encode("latin-1"))
    with pytest.raises(IOFailure):
        read_transfer_rules([path])


def test_code_rules_are_lenient(write_rules):
    path = write_rules(
        "codes.txt",
        """
        object_type,object_id,object_system,object_code
        line,l1,source,L-001
        vehicle,v1,source,V1
        stop_point,sp_1,source
        stop_point,sp_1,source,0042
        """,
    )
    records = read_code_rules([path])

    assert [type(r) for r in records] == [CodeRule, MalformedLine, MalformedLine, CodeRule]
    assert records[0].object_type is ObjectType.LINE
    assert records[3].object_code == "0042"
    bad_type, short = records[1], records[2]
    assert bad_type.source.line == 3
    assert "object_type" in bad_type.reason
    assert short.reason == "expected 4 fields, got 3"
    assert short.fields == ("stop_point", "sp_1", "source")


def test_code_rule_precedence_key(write_rules):
    base = write_rules("base.txt", "line,l1,source,A\nline,l1,other,B\n")
    local = write_rules("local.txt", "line,l1,source,C\n")
    records = read_code_rules([base, local])

    assert [(r.object_system, r.object_code) for r in records] == [("other", "B"), ("source", "C")]


def test_oversized_code_rule_field_is_reported_and_reading_continues(tmp_path):
    path = tmp_path / "codes.txt"
    path.write_text(
        "line,l1,source,A\n"
        f"line,l2,source,{'x' * 200_000}\n"
        "line,l3,source,C\n",
        encoding="utf-8",
    )
    records = read_code_rules([path])

    assert [type(r) for r in records] == [CodeRule, MalformedLine, CodeRule]
    assert records[1].source.line == 2
    assert "unreadable CSV row" in records[1].reason
    assert records[2].object_id == "l3"


def test_undecodable_code_rule_line_is_reported_and_reading_continues(tmp_path):
    path = tmp_path / "codes.txt"
    path.write_bytes(b"line,l1,source,A\nline,l2,source,\xff\xfe\nline,l3,source,C\n")
    records = read_code_rules([path])

    assert [type(r) for r in records] == [CodeRule, MalformedLine, CodeRule]
    assert records[1].source.line == 2
    assert records[1].reason == "not valid UTF-8 text"


def test_oversized_transfer_rule_field_still_aborts(tmp_path):
    path = tmp_path / "rules.txt"
    path.write_text(f"add,a,b,10\nadd,{'x' * 200_000},b,10\n", encoding="utf-8")
    with pytest.raises(MalformedRule) as excinfo:
        read_transfer_rules([path])
    assert excinfo.value.line == 2

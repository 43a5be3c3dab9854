"""Tests for node resolution and allowlist enforcement."""

import datetime
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest

from guarded_yaml import (
    Allowlist,
    ConstructionFailed,
    DisallowedTag,
    DisallowedType,
    MalformedScalar,
    ResolutionLimitExceeded,
    ResolverLimits,
    SafeResolver,
    load,
    load_all,
    resolve_document,
)
from guarded_yaml.nodes import MappingNode, ScalarNode, SequenceNode


@pytest.mark.parametrize("document, tag", [
    ("!custom 1", "!custom"),
    ("!binary aGVsbG8=", "!binary"),
    ("!ruby/object:Foo {}", "!ruby/object:Foo"),
    ("!!python/object/apply:os.system ['echo hi']", "tag:yaml.org,2002:python/object/apply:os.system"),
    ("!!python/name:os.system ''", "tag:yaml.org,2002:python/name:os.system"),
    ("items:\n  - !custom {a: 1}", "!custom"),
])
def test_unregistered_tags_are_rejected(document, tag, allowlist):
    with pytest.raises(DisallowedTag) as exc:
        load(document, allowlist)
    assert exc.value.tag == tag


@pytest.mark.parametrize("document, class_name", [
    ("!object:os.system ls", "os.system"),
    ("!object:subprocess.Popen [ls]", "subprocess.Popen"),
    ("!class builtins.eval", "builtins.eval"),
    ("outer:\n  inner: !object:decimal.Decimal '1'", "decimal.Decimal"),
])
def test_unregistered_classes_are_rejected(document, class_name, allowlist):
    with pytest.raises(DisallowedType) as exc:
        load(document, allowlist)
    assert exc.value.class_name == class_name


def test_registering_a_tag_does_not_permit_classes(allowlist):
    """Class tags are only checked against the class registry."""
    allowlist.register_tags(["!object:decimal.Decimal"])
    with pytest.raises(DisallowedType):
        load("!object:decimal.Decimal '1'", allowlist)


def test_rejection_is_logged(allowlist, caplog):
    with pytest.raises(DisallowedType):
        load("!object:os.system ls", allowlist)
    assert "Rejected class 'os.system'" in caplog.text


def test_error_message_includes_position(allowlist):
    with pytest.raises(DisallowedTag) as exc:
        load("a: 1\nb: !custom 2\n", allowlist)
    assert "line 2" in str(exc.value)


def test_registered_tags_resolve(app_allowlist):
    data = load(
        "blob: !binary aGVsbG8=\n"
        "ratio: !float 1\n"
        "when: !timestamp 2020-01-02\n"
        "name: !str 42\n",
        app_allowlist,
    )
    assert data == {
        "blob": b"hello",
        "ratio": 1.0,
        "when": datetime.date(2020, 1, 2),
        "name": "42",
    }


def test_registered_tag_without_constructor_resolves_by_kind(allowlist):
    allowlist.register_tags(["!custom"])
    assert load("!custom {a: 1}", allowlist) == {"a": 1}
    assert load("!custom [1, 2]", allowlist) == [1, 2]
    assert load("!custom 12", allowlist) == "12"


def test_core_tags_need_no_registration(allowlist):
    data = load(
        "- !!str 123\n"
        "- !!int 7\n"
        "- !!float 2\n"
        "- !!binary aGk=\n"
        "- !!map {a: 1}\n"
        "- !!seq [1]\n"
        "- ! 12\n",
        allowlist,
    )
    assert data == ["123", 7, 2.0, b"hi", {"a": 1}, [1], "12"]


def test_plain_document(allowlist):
    data = load(
        "name: Assignment 1\n"
        "published: yes\n"
        "points: 1_000\n"
        "weight: 0.5\n"
        "due_at: 2016-03-01 23:59:00 -6\n"
        "unlock_at:\n"
        "ids: [0x1F, '0x1F', 0x_]\n",
        allowlist,
    )
    assert data["name"] == "Assignment 1"
    assert data["published"] is True
    assert data["points"] == 1000
    assert data["weight"] == 0.5
    assert data["due_at"].utcoffset() == datetime.timedelta(hours=-6)
    assert data["unlock_at"] is None
    assert data["ids"] == [31, "0x1F", "0x_"]


def test_quoted_scalars_stay_strings(app_allowlist):
    data = load('- "123"\n- \'123\'\n- 123\n- !object:set ["1", 1]\n', app_allowlist)
    assert data[:3] == ["123", "123", 123]
    assert data[3] == {"1", 1}


def test_quoting_wins_over_value_tags(allowlist):
    data = load(
        "- !!int \"123\"\n"
        "- !!float '1.5'\n"
        "- !!bool \"yes\"\n"
        "- !!timestamp '2001-12-14'\n"
        "- !!binary 'aGk='\n",
        allowlist,
    )
    assert data == ["123", "1.5", "yes", "2001-12-14", b"hi"]


def test_block_scalars_stay_strings(allowlist):
    assert load("a: |\n  123\n", allowlist) == {"a": "123\n"}


def test_duplicate_keys_last_wins(allowlist):
    assert load("a: 1\nb: 2\na: 3\n", allowlist) == {"a": 3, "b": 2}


def test_keys_equal_after_resolution_last_wins(allowlist):
    """``1`` and ``0x1`` are the same key once resolved."""
    assert load("1: one\n0x1: hex\n", allowlist) == {1: "hex"}


def test_unhashable_key_fails(allowlist):
    with pytest.raises(ConstructionFailed) as exc:
        load("? [a, b]\n: c\n", allowlist)
    assert "unhashable" in str(exc.value)


def test_tag_on_wrong_node_kind_fails(allowlist):
    with pytest.raises(ConstructionFailed):
        load("!!seq {a: 1}", allowlist)
    with pytest.raises(ConstructionFailed):
        load("!!map [1]", allowlist)
    with pytest.raises(ConstructionFailed):
        load("!!int [1]", allowlist)


def test_malformed_tagged_scalar_aborts_document(allowlist):
    with pytest.raises(MalformedScalar):
        load("good: 1\nbad: !!int twelve\n", allowlist)


def test_empty_document(allowlist):
    assert load("", allowlist) is None
    assert load("# only a comment\n", allowlist) is None
    assert resolve_document(None) is None


def test_default_allowlist_is_core_only():
    assert load("a: [1, 2]") == {"a": [1, 2]}
    with pytest.raises(DisallowedTag):
        load("!binary aGk=")


def test_resolve_document_from_built_nodes(allowlist):
    allowlist.register_tags(["!timestamp#iso8601"])
    root = MappingNode([
        (ScalarNode("when"), ScalarNode("2001-12-14T21:59:43Z", tag="!timestamp#iso8601")),
        (ScalarNode("count"), SequenceNode([ScalarNode("1"), ScalarNode("1", style='"')])),
    ])
    data = resolve_document(root, allowlist)
    assert data["when"].tzinfo is datetime.timezone.utc
    assert data["count"] == [1, "1"]


def test_resolver_freezes_allowlist(allowlist):
    SafeResolver(allowlist)
    assert allowlist.frozen


def test_security_checks_survive_hook_overrides(allowlist):
    """Overriding a construction hook does not bypass the tag check."""

    class ShoutingResolver(SafeResolver):
        def construct_scalar(self, node, ctx):
            value = super().construct_scalar(node, ctx)
            return value.upper() if isinstance(value, str) else value

    resolver = ShoutingResolver(allowlist)
    root = SequenceNode([ScalarNode("quiet"), ScalarNode("x", tag="!custom")])
    with pytest.raises(DisallowedTag):
        resolver.resolve_document(root)
    assert resolver.resolve_document(SequenceNode([ScalarNode("quiet")])) == ["QUIET"]


def test_max_depth(allowlist):
    limits = ResolverLimits(max_depth=3)
    assert load("[[1]]", allowlist, limits=limits) == [[1]]
    with pytest.raises(ResolutionLimitExceeded) as exc:
        load("[[[[1]]]]", allowlist, limits=limits)
    assert exc.value.limit == "max_depth"


def test_deep_nesting_is_rejected_while_composing(allowlist):
    """A small but deeply nested document never reaches the resolver."""
    document = "[" * 3000 + "]" * 3000
    with pytest.raises(ResolutionLimitExceeded) as exc:
        load(document, allowlist)
    assert exc.value.limit == "max_depth"
    assert exc.value.value == 100
    with pytest.raises(ResolutionLimitExceeded):
        list(load_all("--- 1\n--- " + document + "\n", allowlist))


def test_nesting_past_interpreter_limit_without_max_depth(allowlist):
    depth = sys.getrecursionlimit() * 2
    limits = ResolverLimits(max_depth=None)
    with pytest.raises(ResolutionLimitExceeded) as exc:
        load("[" * depth + "]" * depth, allowlist, limits=limits)
    assert exc.value.limit == "recursion_limit"


def test_max_nodes(allowlist):
    limits = ResolverLimits(max_nodes=3)
    with pytest.raises(ResolutionLimitExceeded) as exc:
        load("[1, 2, 3]", allowlist, limits=limits)
    assert exc.value.limit == "max_nodes"


def test_max_aliases(allowlist):
    limits = ResolverLimits(max_aliases=1)
    assert load("a: &a 1\nb: *a\n", allowlist, limits=limits) == {"a": 1, "b": 1}
    with pytest.raises(ResolutionLimitExceeded) as exc:
        load("a: &a 1\nb: *a\nc: *a\n", allowlist, limits=limits)
    assert exc.value.limit == "max_aliases"


def test_limits_can_be_disabled(allowlist):
    limits = ResolverLimits(max_depth=None, max_nodes=None, max_aliases=None)
    assert load("[[[[[[1]]]]]]", allowlist, limits=limits) == [[[[[[1]]]]]]


def test_max_bytes(allowlist):
    with pytest.raises(ResolutionLimitExceeded) as exc:
        load("a: " + "x" * 100, allowlist, max_bytes=50)
    assert exc.value.limit == "max_bytes"
    assert load("a: " + "x" * 100, allowlist, max_bytes=None) == {"a": "x" * 100}


def test_max_bytes_counts_encoded_text(allowlist):
    document = "a: " + "é" * 30
    assert len(document) < 50
    with pytest.raises(ResolutionLimitExceeded):
        load(document, allowlist, max_bytes=50)


def test_load_from_file(allowlist, write_file):
    path = write_file("doc.yaml", "a: 1\n")
    with open(path, "rb") as f:
        assert load(f, allowlist) == {"a": 1}


def test_load_all(allowlist):
    assert list(load_all("--- 1\n--- [a]\n--- {b: 2}\n", allowlist)) == [1, ["a"], {"b": 2}]


def test_concurrent_passes_share_a_resolver(app_allowlist):
    """Every pass has its own anchor table, so threads do not interfere."""
    resolver = SafeResolver(app_allowlist)

    def resolve(i):
        root = MappingNode([
            (ScalarNode("x"), MappingNode([(ScalarNode("n"), ScalarNode(str(i)))], anchor="a")),
        ])
        return resolver.resolve_document(root)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(resolve, range(200)))
    assert results == [{"x": {"n": i}} for i in range(200)]


def test_concurrent_loads_with_aliases(app_allowlist):
    def run(i):
        return load(f"base: &b {{n: {i}}}\ncopy: *b\n", app_allowlist)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(run, range(100)))
    for i, data in enumerate(results):
        assert data["copy"] == {"n": i}
        assert data["copy"] is data["base"]

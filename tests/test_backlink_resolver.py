"""Tests for backlink lookup."""
import datetime

from notegraph_mcp.models.schema import Note, TenantKind
from notegraph_mcp.services.backlink_resolver import BacklinkResolver, find_backlinks

BASE_TIME = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)


def make_note(note_id, content=None, minutes=0):
    stamp = BASE_TIME + datetime.timedelta(minutes=minutes)
    return Note(
        id=note_id,
        tenant_id=1,
        tenant_kind=TenantKind.PERSONAL,
        content=content,
        updated_at=stamp,
    )


class TestFindBacklinks:
    """Tests for the pure find_backlinks function."""

    def test_matches_and_ordering(self):
        old = make_note(2, "[[1|one]]", minutes=1)
        new = make_note(3, "again [[1|one]]", minutes=10)
        unrelated = make_note(4, "[[5|five]]", minutes=20)
        result = find_backlinks(1, [old, unrelated, new])
        assert [n.id for n in result] == [3, 2]

    def test_excludes_note_itself(self):
        target = make_note(1, "I am [[1|myself]]")
        other = make_note(2, "[[1|one]]")
        assert [n.id for n in find_backlinks(1, [target, other])] == [2]

    def test_bare_numeral_does_not_match(self):
        assert find_backlinks(1, [make_note(2, "Step 1 of note 1")]) == []

    def test_prefix_without_valid_reference_does_not_match(self):
        assert find_backlinks(1, [make_note(2, "[[1|]] broken")]) == []

    def test_longer_id_does_not_match(self):
        assert find_backlinks(1, [make_note(2, "[[12|twelve]]")]) == []

    def test_ties_broken_by_id(self):
        a = make_note(2, "[[1|x]]", minutes=5)
        b = make_note(3, "[[1|x]]", minutes=5)
        assert [n.id for n in find_backlinks(1, [a, b])] == [3, 2]


class TestBacklinkResolver:
    """Tests for BacklinkResolver against the note store."""

    def test_resolve(self, note_repository, add_note, alice):
        target = add_note(alice, title="Target")
        old = add_note(alice, f"[[{target.id}|T]]", minutes=1)
        new = add_note(alice, f"Also [[{target.id}|T]]", minutes=30)
        add_note(alice, "Nothing here", minutes=60)
        result = BacklinkResolver(note_repository).resolve(target.id, alice)
        assert [n.id for n in result] == [new.id, old.id]

    def test_self_reference_excluded(self, note_repository, add_note, set_content, alice):
        target = add_note(alice, title="Target")
        set_content(target, f"[[{target.id}|me]]")
        assert BacklinkResolver(note_repository).resolve(target.id, alice) == []

    def test_numeral_mention_excluded(self, note_repository, add_note, alice):
        target = add_note(alice, title="Target")
        add_note(alice, f"Mentions {target.id} but does not link it")
        add_note(alice, f"[[{target.id}|]] is not a link either")
        assert BacklinkResolver(note_repository).resolve(target.id, alice) == []

    def test_other_tenants_excluded(self, note_repository, add_note, alice, bob, acme):
        target = add_note(alice, title="Target")
        add_note(bob, f"[[{target.id}|yours]]")
        add_note(acme, f"[[{target.id}|yours]]")
        mine = add_note(alice, f"[[{target.id}|mine]]")
        result = BacklinkResolver(note_repository).resolve(target.id, alice)
        assert [n.id for n in result] == [mine.id]

    def test_repeated_references_listed_once(self, note_repository, add_note, alice):
        target = add_note(alice, title="Target")
        linking = add_note(alice, f"[[{target.id}|T]] and [[{target.id}|T again]]")
        result = BacklinkResolver(note_repository).resolve(target.id, alice)
        assert [n.id for n in result] == [linking.id]

    def test_zero_padded_reference(self, note_repository, add_note, alice):
        target = add_note(alice, title="Target")
        padded = add_note(alice, f"see [[0{target.id}|T]]", minutes=5)
        add_note(alice, f"[[0{target.id + 1}|other]]", minutes=9)
        result = BacklinkResolver(note_repository).resolve(target.id, alice)
        assert [n.id for n in result] == [padded.id]

    def test_agrees_with_graph_edges(self, note_service, add_note, alice):
        target = add_note(alice, title="Target")
        linkers = [
            add_note(alice, f"[[{target.id}|plain]]", minutes=1),
            add_note(alice, f"[[00{target.id}|padded]]", minutes=2),
            add_note(alice, f"[[[[{target.id}|nested]]", minutes=3),
        ]
        add_note(alice, f"[[{target.id}0|longer id]] and {target.id}", minutes=4)
        graph = note_service.get_graph(alice)
        sources = {e.source for e in graph.edges if e.target == target.id}
        backlinks = note_service.get_backlinks(target.id, alice)
        assert {n.id for n in backlinks} == sources == {n.id for n in linkers}

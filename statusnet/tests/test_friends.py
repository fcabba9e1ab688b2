"""Tests for the friend-list codec."""
import pytest

from statusnet.errors import BadRequest
from statusnet.friends import (
    Location,
    add_friend,
    format_friends,
    parse_friends,
    remove_friend,
)

BOB = Location("CA", "bob")
CAROL = Location("US", "carol")


class TestCodec:
    def test_empty_string_is_empty_list(self):
        assert parse_friends("") == []

    def test_empty_list_is_empty_string(self):
        assert format_friends([]) == ""

    def test_single_pair(self):
        assert format_friends([BOB]) == "CA;bob"
        assert parse_friends("CA;bob") == [BOB]

    def test_multiple_pairs_keep_order(self):
        encoded = "CA;bob|US;carol|UK;dave"
        assert parse_friends(encoded) == [BOB, CAROL, Location("UK", "dave")]

    @pytest.mark.parametrize("friends", [
        [],
        [Location("CA", "bob")],
        [Location("CA", "bob"), Location("US", "carol")],
        [Location("Mexico", "Juan Perez"), Location("CA", "b-o_b.2")],
    ])
    def test_round_trip(self, friends):
        assert parse_friends(format_friends(friends)) == friends

    def test_plain_tuples_accepted(self):
        assert format_friends([("CA", "bob")]) == "CA;bob"

    @pytest.mark.parametrize("bad", [
        Location("C;A", "bob"),
        Location("CA", "bo|b"),
        Location("", "bob"),
        Location("CA", ""),
    ])
    def test_reserved_or_empty_identifiers_rejected(self, bad):
        with pytest.raises(BadRequest):
            format_friends([bad])


class TestSetOperations:
    def test_add_appends(self):
        assert add_friend([BOB], CAROL) == [BOB, CAROL]

    def test_add_is_idempotent(self):
        once = add_friend([], BOB)
        twice = add_friend(once, BOB)
        assert once == twice == [BOB]

    def test_add_does_not_mutate_input(self):
        friends = [BOB]
        add_friend(friends, CAROL)
        assert friends == [BOB]

    def test_remove_present(self):
        assert remove_friend([BOB, CAROL], BOB) == [CAROL]

    def test_remove_absent_is_noop(self):
        assert remove_friend([BOB], CAROL) == [BOB]

    def test_remove_from_empty(self):
        assert remove_friend([], BOB) == []

    def test_location_str(self):
        assert str(BOB) == "CA/bob"

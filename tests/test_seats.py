from seats import SeatMap, player_key, player_name


class TestPlayerKey:
    def test_first_present_alias_wins(self):
        assert player_key({"userId": "b", "id": "c"}) == "b"
        assert player_key({"user_id": "a", "userId": "b"}) == "a"

    def test_empty_values_are_skipped(self):
        assert player_key({"user_id": "", "profile_id": 5}) == "5"

    def test_no_key(self):
        assert player_key({"name": "x"}) == ""
        assert player_key(None) == ""

    def test_names(self):
        assert player_name({"display_name": "Dee"}, 0) == "Dee"
        assert player_name({"id": 3}, 2) == "Player 3"


class TestSeatMap:
    def test_account_match(self, roster):
        seats = SeatMap(roster, my_user_id="u2")
        assert seats.keys == ["u1", "u2"]
        assert seats.my_seat_index == 1
        assert seats.my_key == "u2"
        assert seats.ready

    def test_account_match_beats_hint(self, roster):
        assert SeatMap(roster, my_user_id="u1", seat_hint=1).my_seat_index == 0

    def test_hint_used_without_match(self, roster):
        assert SeatMap(roster, my_user_id="zz", seat_hint=1).my_seat_index == 1

    def test_bad_hint_is_spectator(self, roster):
        seats = SeatMap(roster, seat_hint=5)
        assert seats.my_seat_index == -1
        assert seats.is_spectator
        assert seats.my_key is None

    def test_extra_players_spectate(self):
        roster = [{"id": "a"}, {"id": "b"}, {"id": "c"}]
        seats = SeatMap(roster, my_user_id="c")
        assert seats.seat_count == 2
        assert seats.is_spectator

    def test_keyless_and_duplicate_records_fall_back_to_join_order(self):
        seats = SeatMap([{"id": "a"}, {"name": "nobody"}], max_seats=2)
        assert seats.keys == ["a", "seat-1"]
        dup = SeatMap([{"id": "a"}, {"user_id": "a"}])
        assert dup.keys == ["a", "seat-1"]
        assert dup.seat_for("a") == 0

    def test_not_ready_below_minimum(self):
        seats = SeatMap([{"id": "a"}], my_user_id="a")
        assert not seats.ready
        assert seats.my_seat_index == 0

    def test_lookup_helpers(self, roster):
        seats = SeatMap(roster, max_seats=4)
        assert seats.key_for(1) == "u2"
        assert seats.key_for(3) is None
        assert seats.seat_for("nope") == -1
        assert seats.seat_for(None) == -1
        assert seats.name_for_key("u2") == "Bo"
        assert seats.name_for_key(None) == "Nobody"

from helpers import outbound, play_round_all_correct, scheduled, score, system_texts


def test_last_player_leaving_destroys_room(service):
    room, _ = service.create_room('A', 'Alice', 1)
    assert service.leave_room('A', room.code) == []
    assert room.code not in service.registry


def test_destroyed_room_cancels_pending_next_chooser(service, playing):
    effects = play_round_all_correct(service, playing)
    pause = scheduled(effects, 'next_chooser')[0]

    for sid in ('A', 'B', 'C'):
        service.disconnect(sid)

    assert playing.code not in service.registry
    assert service.resume_after_pause(playing.code, pause.token) == []


def test_unknown_player_or_room(service, lobby):
    assert service.disconnect('nobody') == []
    assert service.leave_room('A', 'NOPE00') == []
    assert service.leave_room('nobody', lobby.code) == []
    assert len(lobby.players) == 3


def test_host_leaving_lobby_hands_over_host(service, lobby):
    effects = service.leave_room('A', lobby.code)
    assert [p.id for p in lobby.players] == ['B', 'C']
    assert lobby.players[0].is_host
    assert list(lobby.join_order) == ['B', 'C']
    assert 'A' not in lobby.stats
    assert outbound(effects, 'room-update', to=lobby.code)
    assert system_texts(effects) == []


def test_chooser_leaving_mid_round_cancels_it(service, playing):
    effects = service.leave_room('A', playing.code)

    assert '⚠️ The chooser left the game. This round has been cancelled.' in system_texts(effects)
    assert playing.chooser_id == 'B'
    assert playing.status == 'choosing'
    assert playing.active_order == ['C']
    assert 'A' not in playing.has_chosen
    assert playing.secret_character_id is None
    assert playing.turn_id is None
    assert playing.round_phase == 'awaitingQuestion'
    assert playing.timer_active is False
    assert score(playing, 'B') == 0 and score(playing, 'C') == 0
    assert outbound(effects, 'chooser-assigned', to='B')


def test_points_already_awarded_survive_cancellation(service, playing):
    code = playing.code
    service.make_guess('B', code, playing.characters[1]['id'])
    service.make_guess('C', code, playing.secret_character_id)
    assert score(playing, 'C') == 1000

    service.disconnect('A')
    assert score(playing, 'C') == 1000
    assert playing.guessed_correct == set()
    assert playing.round_turn_counts == {}


def test_chooser_leaving_while_picking(service, started):
    effects = service.leave_room('A', started.code)
    assert started.chooser_id == 'B'
    assert started.status == 'choosing'
    assert outbound(effects, 'chooser-assigned', to='B')


def test_only_chooser_left(service):
    room, _ = service.create_room('A', 'Alice', 1)
    service.join_room('B', 'Bob', room.code)
    service.start_game('A', room.code)
    service.choose_character('A', room.code, room.characters[0]['id'])

    effects = service.leave_room('B', room.code)
    assert '❗ All players left, ending the current round.' in system_texts(effects)
    assert room.chooser_id == 'A'
    assert room.status == 'choosing'
    assert room.active_order == []

    # With nobody to guess, picking a character ends the round at once.
    effects = service.choose_character('A', room.code, room.characters[0]['id'])
    assert room.has_chosen == {'A'}
    assert room.round_phase == 'betweenRounds'
    assert scheduled(effects, 'next_chooser')


def test_turn_holder_leaving_skips_to_next(service, playing):
    effects = service.leave_room('B', playing.code)

    assert '⏩ Bob left during their turn, skipping to the next player.' in system_texts(effects)
    assert playing.turn_id == 'C'
    assert playing.active_order == ['C']
    assert playing.round_turn_counts == {'C': 1}
    assert playing.status == 'playing'
    assert scheduled(effects, 'timer')


def test_last_unsolved_turn_holder_leaving_finishes_round(service, playing):
    code = playing.code
    service.make_guess('B', code, playing.characters[1]['id'])
    service.make_guess('C', code, playing.secret_character_id)
    assert playing.turn_id == 'B'

    effects = service.disconnect('B')
    assert playing.round_phase == 'betweenRounds'
    assert playing.has_chosen == {'A'}
    # 500 chooser bonus, then everybody left guessed it.
    assert score(playing, 'A') == 300
    assert outbound(effects, 'round-over')


def test_waiting_guesser_leaving(service):
    room, _ = service.create_room('A', 'Alice', 1)
    for sid, name in [('B', 'Bob'), ('C', 'Cara'), ('D', 'Dave')]:
        service.join_room(sid, name, room.code)
    service.start_game('A', room.code)
    service.choose_character('A', room.code, room.characters[0]['id'])

    effects = service.leave_room('D', room.code)
    assert '🚪 Dave left the game.' in system_texts(effects)
    assert outbound(effects, 'room-update')
    assert room.turn_id == 'B'
    assert room.active_order == ['B', 'C']
    assert room.total_rounds == 4
    assert room.status == 'playing'


def test_join_index_survives_earlier_departures(service, lobby):
    assert [lobby.join_index(pid) for pid in ('A', 'B', 'C')] == [0, 1, 2]

    service.leave_room('A', lobby.code)
    service.join_room('D', 'Dave', lobby.code)
    assert lobby.join_index('B') == 1
    assert lobby.join_index('C') == 2
    assert lobby.join_index('D') == 3

    state = service.snapshot(lobby.code)
    assert [p['joinIndex'] for p in state['players']] == [1, 2, 3]


def test_disconnect_hands_effects_to_dispatcher_per_room(service, playing):
    batches = []
    assert service.disconnect('C', dispatch=batches.append) == []
    assert len(batches) == 1
    assert '🚪 Cara left the game.' in system_texts(batches[0])
    assert playing.get_player('C') is None

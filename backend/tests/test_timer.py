from guesswho.game import timer
from guesswho.game.models import Room
from helpers import outbound, play_round_all_correct, scheduled, system_texts


def test_start_cancels_previous_timer():
    room = Room(code='TIME01')
    first = scheduled(timer.start_round_timer(room, 60))[0]
    second = scheduled(timer.start_round_timer(room, 60))[0]

    assert first.token != second.token
    assert not timer.timer_is_current(room, first.token)
    assert timer.timer_is_current(room, second.token)
    assert timer.tick(room, first.token) == ([], False)


def test_timer_counts_down(service, playing):
    token = playing.timer_token
    for expected in range(59, 0, -1):
        effects = service.tick_timer(playing.code, token)
        assert [e.payload for e in outbound(effects, 'round-timer')] == [{'timeLeft': expected}]
    assert playing.turn_id == 'B'
    assert service.timer_running(playing.code, token)


def test_expiry_auto_passes_and_restarts(service, playing):
    code = playing.code
    token = playing.timer_token
    for _ in range(59):
        service.tick_timer(code, token)

    effects = service.tick_timer(code, token)
    texts = system_texts(effects)
    assert '⏱️ Time’s up! Auto-pass.' in texts
    assert '⏩ Bob passed their turn.' in texts
    assert [e.payload['timeLeft'] for e in outbound(effects, 'round-timer')] == [0, 60]

    assert playing.turn_id == 'C'
    assert playing.round_turn_counts['C'] == 1
    assert playing.time_left == 60

    restarted = scheduled(effects, 'timer')[0]
    assert not service.timer_running(code, token)
    assert service.timer_running(code, restarted.token)
    assert service.tick_timer(code, token) == []


def test_timer_stops_when_round_ends(service, playing):
    token = playing.timer_token
    play_round_all_correct(service, playing)
    assert not service.timer_running(playing.code, token)
    assert not service.timer_running(playing.code, playing.timer_token)


def test_timer_stops_when_room_is_destroyed(service, playing):
    token = playing.timer_token
    for sid in ('B', 'C', 'A'):
        service.disconnect(sid)
    assert not service.timer_running(playing.code, token)
    assert service.tick_timer(playing.code, token) == []

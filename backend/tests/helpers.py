"""Shared assertions over the effects returned by GameService commands."""

from guesswho.game.models import Outbound, Scheduled


def outbound(effects, event=None, to=None):
    return [
        e for e in effects
        if isinstance(e, Outbound)
        and (event is None or e.event == event)
        and (to is None or e.to == to)
    ]


def scheduled(effects, kind=None):
    return [e for e in effects if isinstance(e, Scheduled) and (kind is None or e.kind == kind)]


def system_texts(effects):
    return [e.payload['text'] for e in outbound(effects, 'system-message')]


def score(room, player_id):
    return room.stats[player_id].score


def play_round_all_correct(service, room):
    """Chooser picks the first character and every guesser finds it in turn."""
    secret = room.characters[0]['id']
    effects = service.choose_character(room.chooser_id, room.code, secret)
    while room.turn_id:
        effects = service.make_guess(room.turn_id, room.code, secret)
    return effects


def resume(service, room):
    return service.resume_after_pause(room.code, room.pause_token)

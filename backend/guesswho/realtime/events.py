"""Socket.IO event names shared by the game service and the handlers."""

# Inbound
CREATE_ROOM = "create-room"
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
START_GAME = "start-game"
CHARACTER_CHOSEN = "character-chosen"
ASK_QUESTION = "ask-question"
ANSWER_QUESTION = "answer-question"
MAKE_GUESS = "make-guess"
PASS_TURN = "pass-turn"
PLAY_AGAIN = "play-again"

# Outbound
ROOM_JOINED = "room-joined"
ROOM_UPDATE = "room-update"
SYSTEM_MESSAGE = "system-message"
CHOOSER_ASSIGNED = "chooser-assigned"
GAME_STARTED = "game-started"
CHAT_MESSAGE = "chat-message"
AWAIT_ANSWER = "await-answer"
DECISION_PHASE = "decision-phase"
ROUND_TIMER = "round-timer"
NEW_SET = "new-set"
ROUND_OVER = "round-over"
GAME_OVER = "game-over"
PLAY_AGAIN_READY = "play-again-ready"
ERROR_MESSAGE = "error-message"

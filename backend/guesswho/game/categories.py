from __future__ import annotations

import random


CATEGORIES: dict[str, list[tuple[str, str]]] = {
    "animals": [
        ("🐶", "Dog"), ("🐱", "Cat"), ("🦊", "Fox"), ("🐻", "Bear"),
        ("🐼", "Panda"), ("🐨", "Koala"), ("🐯", "Tiger"), ("🦁", "Lion"),
        ("🐵", "Monkey"), ("🦄", "Unicorn"), ("🐷", "Pig"), ("🐸", "Frog"),
        ("🐔", "Chicken"), ("🦆", "Duck"), ("🦉", "Owl"), ("🦓", "Zebra"),
        ("🦒", "Giraffe"), ("🐘", "Elephant"), ("🐹", "Hamster"), ("🐰", "Rabbit"),
    ],
    "players": [
        ("🧔", "Alex"), ("👩‍🦱", "Mia"), ("👨‍🦰", "Leo"), ("👩‍🦳", "Sophia"),
        ("👨‍🦲", "Victor"), ("👩‍🦰", "Emma"), ("🧑‍🦰", "Noah"), ("🧑‍🦱", "Ava"),
        ("🧑‍🦲", "Zane"), ("🧔‍♂️", "Chris"), ("👩", "Lara"), ("👨", "Ryan"),
        ("👩‍🦰", "Ella"), ("👩‍🦲", "Nina"), ("🧔‍♂️", "Mark"), ("👩‍🦳", "Iris"),
        ("👨‍🦱", "Ethan"), ("👩‍🦱", "Ruby"), ("👨‍🦰", "Owen"), ("👩‍🦰", "Maya"),
    ],
    "celebrities": [
        ("🎤", "Singer"), ("🎬", "Actor"), ("⚽", "Footballer"), ("🏀", "Hooper"),
        ("🎧", "DJ"), ("🎻", "Violinist"), ("🎸", "Guitarist"), ("🎹", "Pianist"),
        ("🏎️", "Racer"), ("🏊", "Swimmer"), ("🏏", "Cricketer"), ("🤹", "Performer"),
        ("🎮", "Streamer"), ("📰", "Host"), ("📚", "Author"), ("🧪", "Scientist"),
        ("🏈", "Quarterback"), ("🎯", "Archer"), ("🥊", "Boxer"), ("🤡", "Comedian"),
    ],
}


def category_keys() -> list[str]:
    return list(CATEGORIES.keys())


def pick_category(rng: random.Random | None = None) -> str:
    return (rng or random).choice(category_keys())


def build_characters(category: str, size: int = 20) -> list[dict]:
    """Return ``size`` characters for ``category``, repeating items if short.

    Ids are ``"{category}-{position}"`` with 1-based positions, so they stay
    stable for as long as the category is in play.
    """
    items = CATEGORIES.get(category, [])
    pool = list(items)
    while len(pool) < size and items:
        pool.extend(items)

    return [
        {"id": f"{category}-{i + 1}", "emoji": emoji, "name": name}
        for i, (emoji, name) in enumerate(pool[:size])
    ]

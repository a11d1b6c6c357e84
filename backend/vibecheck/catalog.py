"""Static game content: prompts, reactions and power-up modifiers."""
import random
from typing import Dict, List, Optional

DOUBLE_POINTS = 'double_points'
ANONYMOUS_RESPONSE = 'anonymous_response'

PROMPTS: List[str] = [
    "When you see your ex at the grocery store",
    "Your boss says 'we need to talk'",
    "Group project and you did all the work",
    "When the WiFi goes down during an important video call",
    "Trying to look busy when your manager walks by",
    "When someone asks what you do for fun",
    "Your food delivery arrives 2 hours late",
    "When you realize you've been on mute the whole meeting",
]

REACTIONS: List[Dict] = [
    {'id': 1, 'type': 'gif', 'url': 'https://media.giphy.com/media/3o7TKTDn976rzVgky4/giphy.gif', 'text': 'This is fine'},
    {'id': 2, 'type': 'gif', 'url': 'https://media.giphy.com/media/13d2jHlSlxklVe/giphy.gif', 'text': 'Eye roll'},
    {'id': 3, 'type': 'gif', 'url': 'https://media.giphy.com/media/1X7lCRp8iE0yrdZvwd/giphy.gif', 'text': 'Awkward'},
    {'id': 4, 'type': 'gif', 'url': 'https://media.giphy.com/media/l3q2K5jinAlChoCLS/giphy.gif', 'text': 'Nope'},
    {'id': 5, 'type': 'gif', 'url': 'https://media.giphy.com/media/xT9IgG50Fb7Mi0prBC/giphy.gif', 'text': 'Drama'},
    {'id': 6, 'type': 'gif', 'url': 'https://media.giphy.com/media/3oz8xLd9DJq2l2VFtu/giphy.gif', 'text': 'Confused'},
    {'id': 7, 'type': 'gif', 'url': 'https://media.giphy.com/media/l3q2K5jinAlChoCLS/giphy.gif', 'text': 'Nope'},
    {'id': 8, 'type': 'gif', 'url': 'https://media.giphy.com/media/xT9IgG50Fb7Mi0prBC/giphy.gif', 'text': 'Drama'},
    {'id': 9, 'type': 'gif', 'url': 'https://media.giphy.com/media/3oz8xLd9DJq2l2VFtu/giphy.gif', 'text': 'Confused'},
    {'id': 10, 'type': 'gif', 'url': 'https://media.giphy.com/media/3o7TKTDn976rzVgky4/giphy.gif', 'text': 'This is fine'},
    {'id': 11, 'type': 'gif', 'url': 'https://media.giphy.com/media/13d2jHlSlxklVe/giphy.gif', 'text': 'Eye roll'},
    {'id': 12, 'type': 'gif', 'url': 'https://media.giphy.com/media/1X7lCRp8iE0yrdZvwd/giphy.gif', 'text': 'Awkward'},
]

MODIFIERS: List[Dict] = [
    {'kind': DOUBLE_POINTS, 'name': 'Double Points', 'description': 'Double your points for this round.'},
    {'kind': ANONYMOUS_RESPONSE, 'name': 'Anonymous Response', 'description': 'Submit your response anonymously.'},
]

_REACTIONS_BY_ID = {r['id']: r for r in REACTIONS}
_MODIFIERS_BY_KIND = {m['kind']: m for m in MODIFIERS}


def draw_prompt(rng: random.Random) -> str:
    return rng.choice(PROMPTS)


def draw_modifier_kind(rng: random.Random) -> str:
    return rng.choice(MODIFIERS)['kind']


def reaction_by_id(reaction_id) -> Optional[Dict]:
    """Look up a reaction, tolerating ids sent as strings by clients."""
    try:
        key = int(reaction_id)
    except (TypeError, ValueError):
        return None
    reaction = _REACTIONS_BY_ID.get(key)
    return dict(reaction) if reaction else None


def modifier_info(kind: str) -> Optional[Dict]:
    info = _MODIFIERS_BY_KIND.get(kind)
    return dict(info) if info else None


def catalog_payload() -> Dict:
    return {
        'reactions': [dict(r) for r in REACTIONS],
        'modifiers': [dict(m) for m in MODIFIERS],
    }

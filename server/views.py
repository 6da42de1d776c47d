"""
Per-viewer projections of a match.

Each connected participant receives their own copy of the match state in
which every other hand is replaced by placeholder cards. Only the number of
cards in a hidden hand can be read from a projection. The draw pile is
reduced to its size for everyone.
"""

from typing import Optional

from cards import Card
from constants import HIDDEN
from game import Match


def redact_card(card: Card) -> dict:
    """Placeholder carrying nothing but its existence."""
    return {"id": HIDDEN, "color": HIDDEN, "value": HIDDEN}


def project_match(match: Match, viewer_id: Optional[str]) -> dict:
    """
    Build the state dict sent to one viewer.

    Args:
        match: The authoritative match.
        viewer_id: Recipient participant id. Their own hand is passed through;
            None (or an unseated id) hides every hand.

    Returns:
        JSON-serializable dict describing the match from that viewer's seat.
    """
    discard_top = match.discard_top

    participants_data = []
    for participant in match.participants:
        is_self = viewer_id is not None and participant.id == viewer_id
        if is_self:
            cards = [card.to_dict() for card in participant.cards]
        else:
            cards = [redact_card(card) for card in participant.cards]

        participants_data.append({
            "id": participant.id,
            "name": participant.name,
            "cards": cards,
            "card_count": len(participant.cards),
            "is_active": match.is_active(participant.id),
            "declared_low_hand": participant.id in match.low_hand_declared,
        })

    return {
        "match_id": match.match_id,
        "viewer_id": viewer_id,
        "status": match.status.value,
        "direction": match.direction.value,
        "active_participant_id": match.active_participant_id,
        "winner_id": match.winner_id,
        "discard_top": discard_top.to_dict() if discard_top else None,
        "discard_count": len(match.discard_pile),
        "draw_pile_count": len(match.draw_pile),
        "participants": participants_data,
    }

from enum import Enum


class EventType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


# event types that carry their own amount; the rest refer back to an earlier tx
AMOUNT_EVENT_TYPES = {EventType.DEPOSIT, EventType.WITHDRAWAL}


class Event:
    """One row of the input log, already typed and normalized."""

    def __init__(self, event_type, client_id, tx_id, amount=None):
        self.event_type = event_type
        self.client_id = client_id
        self.tx_id = tx_id
        self.amount = amount

    def __repr__(self):
        return f"Event({self.event_type.value}, client={self.client_id}, tx={self.tx_id}, amount={self.amount})"

    def __eq__(self, other):
        if not isinstance(other, Event):
            return NotImplemented
        return (self.event_type, self.client_id, self.tx_id, self.amount) == \
            (other.event_type, other.client_id, other.tx_id, other.amount)

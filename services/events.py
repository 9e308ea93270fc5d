"""
Domain events for the notification collaborator.

Signals are only sent after the transaction that produced them has
committed; a rolled-back operation never emits anything.
"""
from blinker import Namespace

_signals = Namespace()

booking_created = _signals.signal("booking-created")
booking_cancelled = _signals.signal("booking-cancelled")
request_resolved = _signals.signal("request-resolved")
user_deactivated = _signals.signal("user-deactivated")


def emit(signal, sender, **payload):
    signal.send(sender, **payload)

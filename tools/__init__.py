"""
Tools Package
Calendar, recurrence and push delivery tools for the MedReminder system
"""

from .time_utils import (
    parse_time,
    format_time,
    add_hours_wrapping,
    add_hours_with_rollover,
    weekday_tag,
    combine,
    is_within_quiet_window,
    shift_out_of_quiet_window,
    local_now,
    day_bounds,
)

from .recurrence import (
    DerivedSlot,
    coerce_frequency,
    normalize_weekdays,
    derive_slots,
    expand_slot,
    materialize,
)

from .push_transport import (
    PushMessage,
    PushTicket,
    PushTransport,
    ExpoPushTransport,
    is_push_token,
)

__all__ = [
    # Time Utilities
    "parse_time",
    "format_time",
    "add_hours_wrapping",
    "add_hours_with_rollover",
    "weekday_tag",
    "combine",
    "is_within_quiet_window",
    "shift_out_of_quiet_window",
    "local_now",
    "day_bounds",

    # Recurrence
    "DerivedSlot",
    "coerce_frequency",
    "normalize_weekdays",
    "derive_slots",
    "expand_slot",
    "materialize",

    # Push Transport
    "PushMessage",
    "PushTicket",
    "PushTransport",
    "ExpoPushTransport",
    "is_push_token",
]

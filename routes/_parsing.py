from datetime import date

from services.errors import InvalidBookingInput

def parse_date(value, field="date") -> date:
    # Expect YYYY-MM-DD
    if not value or not isinstance(value, str):
        raise InvalidBookingInput(f"{field} is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidBookingInput(f"Invalid {field}. Use YYYY-MM-DD")

def parse_int(value, field):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidBookingInput(f"{field} must be a positive integer")
    if number <= 0:
        raise InvalidBookingInput(f"{field} must be a positive integer")
    return number

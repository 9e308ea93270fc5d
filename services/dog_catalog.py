from models.booking import TIME_RE
from models.dog import Dog, DOG_SIZES
from models.user import EXPERIENCE_LEVELS
from security.rbac import require_admin
from services.errors import DogNotFound, InvalidDogDetails
from services.transaction import atomic
from utils.audit import log_event
from utils.clock import shelter_now


class DogCatalog:
    def __init__(self, clock=shelter_now):
        self.clock = clock

    def get(self, dog_id: int):
        return Dog.query.get(dog_id)

    def require(self, dog_id: int) -> Dog:
        dog = self.get(dog_id)
        if dog is None:
            raise DogNotFound(dog_id=dog_id)
        return dog

    def list_available(self, category=None):
        q = Dog.query.filter_by(is_available=True)
        if category:
            q = q.filter_by(category=category)
        return q.order_by(Dog.name.asc()).all()

    def add(self, actor, name: str, breed: str, category: str = "green", size=None, age=None,
            special_needs=None, default_morning_time=None, default_evening_time=None) -> Dog:
        require_admin(actor)
        name = (name or "").strip()
        breed = (breed or "").strip()
        if not name or not breed:
            raise InvalidDogDetails("Dog name and breed are required")
        if category not in EXPERIENCE_LEVELS:
            raise InvalidDogDetails("Category must be green, blue or orange")
        if size is not None and size not in DOG_SIZES:
            raise InvalidDogDetails("Size must be small, medium or large")
        if age is not None:
            try:
                age = int(age)
            except (TypeError, ValueError):
                raise InvalidDogDetails("Age must be a whole number of years")
            if age < 0:
                raise InvalidDogDetails("Age must be a whole number of years")
        for field, value in (("default_morning_time", default_morning_time),
                             ("default_evening_time", default_evening_time)):
            if value is not None and not (isinstance(value, str) and TIME_RE.match(value)):
                raise InvalidDogDetails(f"{field} must be HH:MM (24-hour)")

        with atomic() as session:
            dog = Dog(
                name=name, breed=breed, category=category, size=size, age=age,
                special_needs=special_needs,
                default_morning_time=default_morning_time,
                default_evening_time=default_evening_time,
            )
            session.add(dog)
            session.flush()
            log_event("DOG_CREATE", user_id=actor.user_id, entity="dog", entity_id=dog.id)
        return dog

    def set_availability(self, actor, dog_id: int, available: bool, reason=None) -> Dog:
        """Unavailable dogs cannot be booked on any date until switched back."""
        require_admin(actor)
        with atomic():
            dog = self.require(dog_id)
            dog.is_available = bool(available)
            if dog.is_available:
                dog.unavailable_reason = None
                dog.unavailable_since = None
            else:
                dog.unavailable_reason = reason
                dog.unavailable_since = self.clock()
            log_event("DOG_AVAILABILITY", user_id=actor.user_id, entity="dog", entity_id=dog.id,
                      metadata={"available": dog.is_available, "reason": reason})
        return dog

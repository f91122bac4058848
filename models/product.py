import datetime
import math

PRICE_MIN = 0.0
DEFAULT_TAGS = []

PRODUCT_FIELDS = [
    "id",
    "name",
    "description",
    "price",
    "active",
    "tags",
    "date_created",
]

PRODUCT_SEARCH_FIELDS = ["name", "description", "tags"]

class InvalidProductError(ValueError):
    pass

class Product:
    """
    A Product always has a positive id and a non-empty name; tags are a de-duplicated lowercase list
    """
    def __init__(self, id, name, description, price, active, tags, date_created):
        self.id = Product.normalize_id(id)
        self.name = Product.normalize_name(name)
        self.description = Product.normalize_description(description)
        self.price = Product.normalize_price(price)
        self.active = Product.normalize_active(active)
        self.tags = Product.normalize_tags(tags)
        self.date_created = Product.normalize_date_created(date_created)

    @staticmethod
    def normalize_id(id):
        if isinstance(id, bool) or not id:
            raise InvalidProductError("missing id")

        if isinstance(id, str):
            id = id.strip()
            if not id.isdigit():
                raise InvalidProductError("id is not numeric")
            id = int(id)

        if not isinstance(id, int) or id <= 0:
            raise InvalidProductError("id must be a positive integer")

        return id

    @staticmethod
    def normalize_name(name):
        if not name or not isinstance(name, str) or not name.strip():
            raise InvalidProductError("missing name")

        return " ".join(name.split())

    @staticmethod
    def normalize_description(description):
        if not description:
            return ""

        return " ".join(str(description).split())

    @staticmethod
    def normalize_price(price):
        if price is None or price == "":
            return None

        if isinstance(price, bool) or not isinstance(price, (int, float, str)):
            raise InvalidProductError("price is not a number")

        try:
            price = float(price)
        except ValueError:
            raise InvalidProductError("price is not a number") from None

        if math.isnan(price) or price < PRICE_MIN:
            raise InvalidProductError("price out of bounds")

        return price

    @staticmethod
    def normalize_active(active):
        if active is None or active == "":
            return True

        if isinstance(active, bool):
            return active

        if isinstance(active, str):
            lowered = active.strip().lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False

        raise InvalidProductError("active is not a boolean")

    @staticmethod
    def normalize_tags(tags):
        if tags is None:
            return DEFAULT_TAGS[:]

        if not isinstance(tags, (str, list)):
            raise InvalidProductError("tags is not None, string or list")

        if isinstance(tags, str):
            tags = tags.split(",")

        for tag in tags:
            if not isinstance(tag, str):
                raise InvalidProductError("found non-string tag")

        tags = [t.strip().lower() for t in tags if t.strip()]
        return list(dict.fromkeys(tags))

    @staticmethod
    def normalize_date_created(date_created):
        if date_created is None or date_created == "":
            return None

        if isinstance(date_created, datetime.datetime):
            value = date_created
        elif isinstance(date_created, bool):
            raise InvalidProductError("date_created is not a timestamp")
        elif isinstance(date_created, (int, float)):
            # epoch milliseconds
            value = datetime.datetime.fromtimestamp(date_created / 1000, tz=datetime.timezone.utc)
        elif isinstance(date_created, str):
            try:
                value = datetime.datetime.fromisoformat(date_created.strip())
            except ValueError:
                raise InvalidProductError("date_created is not ISO-8601") from None
        else:
            raise InvalidProductError("date_created is not a timestamp")

        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "active": self.active,
            "tags": self.tags[:],
            "date_created": self.date_created.isoformat() if self.date_created else None,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(id=data.get("id", None),
                   name=data.get("name", None),
                   description=data.get("description", None),
                   price=data.get("price", None),
                   active=data.get("active", None),
                   tags=data.get("tags", None),
                   date_created=data.get("date_created", None))

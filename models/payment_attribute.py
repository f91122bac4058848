PAYMENT_ATTRIBUTE_FIELDS = [
    "id",
    "name",
    "value",
    "payment_id",
    "payment.name",
    "payment.amount",
    "payment.status",
]

PAYMENT_ATTRIBUTE_SEARCH_FIELDS = ["name", "value", "payment.name"]

class Payment:
    def __init__(self, id, name, amount=None, status=None):
        self.id = id
        self.name = name
        self.amount = amount
        self.status = status

    def to_dict(self):
        return {"id": self.id, "name": self.name, "amount": self.amount, "status": self.status}

class PaymentAttribute:
    """
    A key/value attribute attached to a payment. `payment` is the related Payment when it was
    loaded alongside the attribute, otherwise None.
    """
    def __init__(self, id, name, value, payment_id, payment=None):
        self.id = id
        self.name = name
        self.value = value
        self.payment_id = payment_id
        self.payment = payment

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "payment_id": self.payment_id,
            "payment": self.payment.to_dict() if self.payment else None,
        }

    @classmethod
    def from_dict(cls, data):
        payment = data.get("payment")
        if isinstance(payment, dict):
            payment = Payment(
                id=payment.get("id"),
                name=payment.get("name"),
                amount=payment.get("amount"),
                status=payment.get("status"),
            )
        return cls(id=data.get("id"),
                   name=data.get("name"),
                   value=data.get("value"),
                   payment_id=data.get("payment_id"),
                   payment=payment)

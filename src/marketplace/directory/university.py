from protean.fields import DateTime, String

from marketplace.domain import marketplace


@marketplace.aggregate
class University:
    name = String(required=True, max_length=255)
    city = String(max_length=100)
    created_at = DateTime()

from models.session_models import FieldType

DATE_KEYWORDS = ["date", "dob", "birth", "deadline", "expiry", "expiration", "anniversary"]
NUMBER_KEYWORDS = [
    "age", "count", "number", "amount", "quantity", "price",
    "total", "sum", "year", "months", "days", "hours",
]


def infer_field_type(field: str) -> FieldType:
    """
    Guess the input type of a field from its name.
    Date keywords win over number keywords ("expiry_date_count" is a date).
    """
    name = field.lower()

    if any(k in name for k in DATE_KEYWORDS):
        return "date"
    if any(k in name for k in NUMBER_KEYWORDS):
        return "number"
    return "text"


def infer_field_types(fields) -> dict:
    return {field: infer_field_type(field) for field in fields}

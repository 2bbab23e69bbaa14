# xfin/utils.py
import json
import re
from datetime import date, datetime

from flask import request
from flask_jwt_extended import get_jwt_identity

from .errors import ValidationError

DATE_FORMATS = ["%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d", "%d-%m-%Y"]
MAX_AMOUNT = 1_000_000_000


def today():
    return date.today()


def now_iso():
    return datetime.now().isoformat(timespec="seconds")


def db_date(value):
    """Stored ISO text back to a date."""
    return date.fromisoformat(str(value)[:10])


def current_user_id():
    return int(get_jwt_identity())


def get_payload():
    """JSON body, or the form fields of a multipart request."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def parse_date(value, field="date"):
    """Accept ISO dates/datetimes and a few common formats. Returns a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or str(value).strip() == "":
        raise ValidationError(f"Campo obrigatório: {field}")
    s = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"Data inválida: {field}")


def parse_optional_date(value, field="date"):
    if value is None or str(value).strip() == "":
        return None
    return parse_date(value, field)


def parse_amount(value, field="amount", allow_zero=False):
    if value is None or str(value).strip() == "":
        raise ValidationError(f"Campo obrigatório: {field}")
    if isinstance(value, bool):
        raise ValidationError(f"Valor inválido: {field}")
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        cleaned = re.sub(r"[^\d.,-]", "", str(value)).replace(",", ".")
        try:
            amount = float(cleaned)
        except ValueError:
            raise ValidationError(f"Valor inválido: {field}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"O valor deve ser positivo: {field}")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"Valor muito alto: {field}")
    return round(amount, 2)


def parse_optional_amount(value, field="amount"):
    if value is None or str(value).strip() == "":
        return None
    return parse_amount(value, field)


def parse_int(value, field, minimum=None, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Número inválido: {field}")
    if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
        raise ValidationError(f"{field} deve estar entre {minimum} e {maximum}")
    return number


def parse_optional_int(value, field):
    if value is None or str(value).strip() == "":
        return None
    return parse_int(value, field)


def parse_bool(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on", "sim")


def parse_choice(value, choices, field):
    if value is None or str(value).strip() == "":
        raise ValidationError(f"Campo obrigatório: {field}")
    normalized = str(value).strip().upper()
    if normalized not in choices:
        raise ValidationError(f"{field} inválido. Use: {', '.join(choices)}")
    return normalized


def require_text(data, field, max_length=255):
    value = data.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(f"Campo obrigatório: {field}")
    return str(value).strip()[:max_length]


def optional_text(value, max_length=1000):
    if value is None:
        return None
    value = str(value).strip()
    return value[:max_length] or None


def parse_json_list(value, field):
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError(f"JSON inválido: {field}")
    if not isinstance(value, list):
        raise ValidationError(f"{field} deve ser uma lista")
    return [str(item) for item in value]


def row_to_dict(row):
    """Convert sqlite3.Row to dict"""
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}

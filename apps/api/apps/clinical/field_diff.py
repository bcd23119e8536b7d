"""
Field-level diffing for audited clinical records.

Each tracked field carries a kind that knows how to normalize a value
for comparison and how to encode it for storage in audit_event.changes.
Normalization is semantic: dates compare by calendar day, decimals
compare numerically whether they arrive as str, Decimal or float, text
ignores surrounding and repeated whitespace, and JSON structures whose
leaves are all empty compare equal to null.
"""
import datetime
import json
from decimal import Decimal, InvalidOperation

from django.core.serializers.json import DjangoJSONEncoder
from django.utils.dateparse import parse_date, parse_datetime, parse_time


# ============================================================================
# Emptiness
# ============================================================================

def is_effectively_empty(value):
    """
    True for None, blank strings, empty containers and containers whose
    values are all effectively empty ({"od": {"sphere": None}} included).
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, float) and (value != value or value in (float('inf'), float('-inf'))):
        return True
    if isinstance(value, (list, tuple, set, frozenset)):
        return all(is_effectively_empty(item) for item in value)
    if isinstance(value, dict):
        return all(is_effectively_empty(item) for item in value.values())
    return False


def should_filter_change(before, after):
    """A change between two effectively empty values is noise."""
    return is_effectively_empty(before) and is_effectively_empty(after)


# ============================================================================
# Normalizers (comparison form) and encoders (stored form)
# ============================================================================

def _normalize_text(value):
    if value is None:
        return None
    collapsed = ' '.join(str(value).split())
    return collapsed or None


def _encode_text(value):
    if value is None or str(value).strip() == '':
        return None
    return str(value)


def _normalize_date(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    parsed = parse_date(text[:10])
    if parsed is None:
        as_datetime = parse_datetime(text)
        return as_datetime.date() if as_datetime else text
    return parsed


def _encode_date(value):
    normalized = _normalize_date(value)
    if isinstance(normalized, datetime.date):
        return normalized.isoformat()
    return normalized


def _normalize_time(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime.datetime):
        value = value.time()
    if isinstance(value, str):
        parsed = parse_time(value.strip())
        if parsed is None:
            return value.strip()
        value = parsed
    return value.strftime('%H:%M')


def _normalize_decimal(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return _normalize_text(value)
    if not number.is_finite():
        return None
    return number


def _encode_decimal(value):
    normalized = _normalize_decimal(value)
    if isinstance(normalized, Decimal):
        return float(normalized)
    return normalized


def _normalize_int(value):
    number = _normalize_decimal(value)
    if isinstance(number, Decimal) and number == number.to_integral_value():
        return int(number)
    return number


def _encode_int(value):
    normalized = _normalize_int(value)
    if isinstance(normalized, Decimal):
        return float(normalized)
    return normalized


def _normalize_bool(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('true', '1', 'yes'):
            return True
        if lowered in ('false', '0', 'no'):
            return False
        return lowered
    return bool(value)


def _prune(value):
    """Drop effectively empty entries so equivalent structures serialize alike."""
    if isinstance(value, dict):
        pruned = {key: _prune(item) for key, item in value.items() if not is_effectively_empty(item)}
        return pruned
    if isinstance(value, (list, tuple)):
        return [_prune(item) for item in value]
    if isinstance(value, str):
        return _normalize_text(value)
    return value


def _normalize_json(value):
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return _normalize_text(value)
    if is_effectively_empty(value):
        return None
    return json.dumps(_prune(value), sort_keys=True, cls=DjangoJSONEncoder)


def _encode_json(value):
    if is_effectively_empty(value):
        return None
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def _normalize_string_set(value):
    if value is None:
        return None
    items = frozenset(str(item).strip() for item in value if not is_effectively_empty(item))
    return items or None


def _encode_string_list(value):
    if value is None:
        return None
    items = [str(item).strip() for item in value if not is_effectively_empty(item)]
    return items or None


class FieldKind:
    """Comparison and storage behaviour shared by fields of one semantic type."""

    def __init__(self, name, normalize, encode):
        self.name = name
        self.normalize = normalize
        self.encode = encode

    def __repr__(self):
        return f"FieldKind({self.name})"


TEXT = FieldKind('text', _normalize_text, _encode_text)
DATE = FieldKind('date', _normalize_date, _encode_date)
TIME = FieldKind('time', _normalize_time, _normalize_time)
DECIMAL = FieldKind('decimal', _normalize_decimal, _encode_decimal)
INTEGER = FieldKind('integer', _normalize_int, _encode_int)
BOOLEAN = FieldKind('boolean', _normalize_bool, _normalize_bool)
JSON = FieldKind('json', _normalize_json, _encode_json)
STRING_SET = FieldKind('string_set', _normalize_string_set, _encode_string_list)


class TrackedField:
    """An audited attribute of a model instance."""

    def __init__(self, name, kind):
        self.name = name
        self.kind = kind

    def __repr__(self):
        return f"TrackedField({self.name}, {self.kind.name})"

    def equal(self, before, after):
        return self.kind.normalize(before) == self.kind.normalize(after)

    def is_empty(self, value):
        return self.kind.normalize(value) is None

    def encode(self, value):
        return self.kind.encode(value)


def tracked(kind, *names):
    return tuple(TrackedField(name, kind) for name in names)


# ============================================================================
# Tracked field sets
# ============================================================================

VISIT_FIELDS = (
    tracked(DATE, 'visit_date', 'illness_start_date', 'end_date')
    + tracked(TIME, 'visit_time')
    + tracked(
        TEXT,
        'visit_type', 'location', 'doctor_name', 'title', 'blood_pressure', 'symptoms',
        'injury_type', 'injury_location', 'treatment', 'vision_prescription',
        'dental_procedure_type', 'dental_notes', 'cleaning_type', 'vaccines_administered', 'notes',
    )
    + tracked(
        DECIMAL,
        'weight_value', 'weight_percentile', 'height_value', 'height_percentile',
        'head_circumference_value', 'head_circumference_percentile', 'bmi_value', 'bmi_percentile',
        'temperature',
    )
    + tracked(INTEGER, 'weight_ounces', 'heart_rate', 'cavities_found', 'cavities_filled')
    + tracked(
        BOOLEAN,
        'needs_glasses', 'ordered_glasses', 'ordered_contacts',
        'xrays_taken', 'fluoride_treatment', 'sealants_applied',
    )
    + tracked(JSON, 'vision_refraction', 'dental_procedures', 'prescriptions', 'tags')
    + tracked(STRING_SET, 'illnesses')
)

ILLNESS_FIELDS = (
    tracked(STRING_SET, 'illness_types')
    + tracked(DATE, 'start_date', 'end_date')
    + tracked(TEXT, 'symptoms', 'notes')
    + tracked(DECIMAL, 'temperature')
    + tracked(INTEGER, 'severity')
    + tracked(TEXT, 'visit_id')
)


# ============================================================================
# Diffs
# ============================================================================

def snapshot(instance, fields):
    """Current values of fields on instance, read fresh."""
    return {field.name: getattr(instance, field.name) for field in fields}


def created_changes(fields, after):
    """{field: {before: None, after}} for every field with an initial value."""
    return {
        field.name: {'before': None, 'after': field.encode(after.get(field.name))}
        for field in fields
        if not field.is_empty(after.get(field.name))
    }


def updated_changes(fields, before, after):
    """{field: {before, after}} for fields whose value semantically changed."""
    changes = {}
    for field in fields:
        old = before.get(field.name)
        new = after.get(field.name)
        if field.equal(old, new):
            continue
        old_encoded = field.encode(old)
        new_encoded = field.encode(new)
        if should_filter_change(old_encoded, new_encoded):
            continue
        changes[field.name] = {'before': old_encoded, 'after': new_encoded}
    return changes


def deleted_changes(fields, before):
    """{field: {before, after: None}} for every field holding a value at deletion."""
    return {
        field.name: {'before': field.encode(before.get(field.name)), 'after': None}
        for field in fields
        if not field.is_empty(before.get(field.name))
    }


def truncate_value(value, max_length):
    if isinstance(value, str) and len(value) > max_length:
        return value[:max_length] + '...'
    return value


def truncate_changes(changes, max_length):
    return {
        key: {
            'before': truncate_value(change.get('before'), max_length),
            'after': truncate_value(change.get('after'), max_length),
        }
        for key, change in changes.items()
    }


# ============================================================================
# Summary
# ============================================================================

def changes_summary(action, entity_type, changes):
    """
    Human-readable one-liner for an audit event.

    Created visit | Deleted illness | Updated notes, symptoms |
    Updated 5 fields: end_date, notes, severity... | Updated visit
    """
    if action == 'created':
        return f"Created {entity_type}"
    if action == 'deleted':
        return f"Deleted {entity_type}"

    keys = sorted(
        key for key, change in (changes or {}).items()
        if isinstance(change, dict) and not should_filter_change(change.get('before'), change.get('after'))
    )
    if not keys:
        return f"Updated {entity_type}"
    if len(keys) <= 3:
        return f"Updated {', '.join(keys)}"
    return f"Updated {len(keys)} fields: {', '.join(keys[:3])}..."

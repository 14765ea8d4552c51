"""
Payload mapper: raw form submission -> remote API request bodies.

Field keys are the ones the intake forms use (fixed per deployment). Every
builder returns an already pruned structure: empty maps, empty lists and
None scalars are removed recursively, booleans and numeric zero are kept.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from src.integrations.policy.field_accessor import FieldAccessor
from src.utils.transformers import (
    clean_digits,
    format_date,
    sanitize_email,
    to_bool,
    to_numeric,
)

MARITAL_STATUS_MAP = {
    "soltero(a)": "single",
    "soltero": "single",
    "soltera": "single",
    "casado(a)": "married",
    "casado": "married",
    "casada": "married",
    "divorciado(a)": "divorced",
    "divorciado": "divorced",
    "divorciada": "divorced",
    "viudo(a)": "widowed",
    "viudo": "widowed",
    "viuda": "widowed",
}

HOUSING_TYPE_MAP = {
    "propia": "owned",
    "alquilada": "rented",
    "hipotecada": "mortgaged",
    "familiar": "other",
}

FREQUENCY_MAP = {
    "semanal": "weekly",
    "quincenal": "biweekly",
    "mensual": "monthly",
    "weekly": "weekly",
    "biweekly": "biweekly",
    "monthly": "monthly",
}

DEFAULT_FREQUENCY = "monthly"


def _lower(value: Any) -> str:
    return str(value).strip().lower()


def _map_enum(raw: Optional[str], mapping: Mapping[str, str], fallback: str) -> Optional[str]:
    # Only present values are mapped; unknown ones fall through to `fallback`.
    if raw is None:
        return None
    return mapping.get(raw, fallback)


def prune_payload(value: Any) -> Any:
    """
    Recursively drop None scalars and empty maps/lists.

    Booleans and numbers (including False and 0) are always retained.
    """
    if isinstance(value, dict):
        pruned = {}
        for key, item in value.items():
            item = prune_payload(item)
            if item is None or (isinstance(item, (dict, list)) and not item):
                continue
            pruned[key] = item
        return pruned
    if isinstance(value, list):
        pruned_list = []
        for item in value:
            item = prune_payload(item)
            if item is None or (isinstance(item, (dict, list)) and not item):
                continue
            pruned_list.append(item)
        return pruned_list
    return value


def _phone(get: FieldAccessor, key: str, phone_type: str) -> Optional[Dict[str, str]]:
    number = get.get(key, sanitizer=None, transformer=clean_digits)
    if not number:
        return None
    return {"number": number, "type": phone_type}


def _loan_details(get: FieldAccessor, default_frequency: Optional[str] = None) -> Dict[str, Any]:
    frequency = _map_enum(
        get.get("frecuencia-pago", sanitizer=None, transformer=_lower),
        FREQUENCY_MAP,
        DEFAULT_FREQUENCY,
    )
    return {
        "amount": get.get("monto-prestamo", sanitizer=None, transformer=to_numeric),
        "term": get.get("plazo-prestamo", sanitizer=None, transformer=to_numeric),
        "rate": get.get("tasa-interes", sanitizer=None, transformer=to_numeric),
        "frequency": frequency or default_frequency,
        "purpose": get.get("proposito-prestamo"),
    }


# ---------------------------------------------------------------------------
# Full customer
# ---------------------------------------------------------------------------

def build_customer_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map the full customer application form into the nested customer payload."""
    get = FieldAccessor(data)

    details: Dict[str, Any] = {
        "first_name": get.get("mf-listing-fname"),
        "last_name": get.get("apellido"),
        "birthday": get.get("fecha-nacimiento", sanitizer=None, transformer=format_date),
        "email": get.get("mf-email", sanitizer=sanitize_email),
        "marital_status": _map_enum(
            get.get("estado-civil", sanitizer=None, transformer=_lower), MARITAL_STATUS_MAP, "other"
        ),
        "nationality": get.get("nacionalidad"),
        "housing_type": _map_enum(
            get.get("tipo-vivienda", sanitizer=None, transformer=_lower), HOUSING_TYPE_MAP, "other"
        ),
        "move_in_date": get.get("fecha-de-mudanza", sanitizer=None, transformer=format_date),
        "phones": [
            _phone(get, "celular", "mobile"),
            _phone(get, "telefono-casa", "home"),
        ],
        "addresses": [],
    }
    street = get.get("direccion")
    if street:
        details["addresses"].append({"street": street, "type": "home"})

    job_info = {
        "is_self_employed": get.get("mf-switch", sanitizer=None, transformer=to_bool),
        "role": get.get("ocupacion"),
        "start_date": get.get("laborando-desde", sanitizer=None, transformer=format_date),
        "salary": get.get("sueldo-mensual", sanitizer=None, transformer=to_numeric),
        "other_incomes": get.get("otros-ingresos", sanitizer=None, transformer=to_numeric),
        "other_incomes_source": get.get("descripcion-otros-ingresos"),
        "supervisor_name": get.get("supervisor"),
    }

    customer: Dict[str, Any] = {
        "NID": get.get("cedula", sanitizer=None, transformer=clean_digits),
        "details": details,
        "jobInfo": job_info,
        "vehicles": _vehicles(get),
        "references": _references(get),
    }

    company = _company(get)
    if company:
        customer["company"] = company

    payload = {
        "customer": customer,
        "terms": get.get("aceptacion-de-condiciones", False, sanitizer=None, transformer=to_bool),
        "details": _loan_details(get),
    }
    return prune_payload(payload)


def _vehicles(get: FieldAccessor) -> List[Dict[str, Any]]:
    vehicle = {
        "is_owned": get.get("vehiculo-propio", sanitizer=None, transformer=to_bool),
        "is_financed": get.get("vehiculo-financiado", sanitizer=None, transformer=to_bool),
        "brand": get.get("vehiculo-marca"),
        "year": get.get("vehiculo-anno", sanitizer=None, transformer=to_numeric),
    }
    if all(v is None for v in vehicle.values()):
        return []
    return [vehicle]


def _references(get: FieldAccessor) -> List[Dict[str, Any]]:
    references = []

    spouse_name = get.get("conyugue")
    spouse_phone = get.get("celular-conyugue", sanitizer=None, transformer=clean_digits) or None
    if spouse_name or spouse_phone:
        references.append(
            {
                "name": spouse_name,
                "phone_number": spouse_phone,
                "relationship": "spouse",
            }
        )

    for index in (1, 2):
        reference = {
            "name": get.get(f"nombre-referencia-{index}"),
            "occupation": get.get(f"ocupacion-referencia-{index}"),
            "relationship": get.get(f"parentesco-referencia-{index}"),
        }
        if any(reference.values()):
            references.append(reference)

    return references


def _company(get: FieldAccessor) -> Optional[Dict[str, Any]]:
    name = get.get("nombre-empresa")
    if not name:
        return None

    company: Dict[str, Any] = {"name": name, "phones": [], "addresses": []}
    phone = _phone(get, "telefono-empresa", "work")
    if phone:
        company["phones"].append(phone)
    street = get.get("direccion-empresa")
    if street:
        company["addresses"].append({"street": street, "type": "work"})
    return company


# ---------------------------------------------------------------------------
# Simple loan
# ---------------------------------------------------------------------------

def build_simple_customer_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Minimal customer record created when a quick-loan applicant is not known yet."""
    get = FieldAccessor(data)

    guarantor = {
        "name": get.get("nombre-garante"),
        "phone_number": get.get("celular-garante", sanitizer=None, transformer=clean_digits) or None,
        "relationship": "guarantor",
    }
    references = [guarantor] if guarantor["name"] or guarantor["phone_number"] else []

    payload = {
        "NID": get.get("cedula", sanitizer=None, transformer=clean_digits),
        "first_name": get.get("mf-listing-fname"),
        "last_name": get.get("apellido"),
        "email": get.get("mf-email", sanitizer=sanitize_email),
        "phone": get.get("celular", sanitizer=None, transformer=clean_digits) or None,
        "references": references,
    }
    return prune_payload(payload)


def build_loan_application_payload(data: Mapping[str, Any], customer_id: Optional[int]) -> Dict[str, Any]:
    get = FieldAccessor(data)
    payload = {
        "customer_id": customer_id,
        "terms": get.get("aceptacion-de-condiciones", False, sanitizer=None, transformer=to_bool),
        "details": _loan_details(get, default_frequency=DEFAULT_FREQUENCY),
    }
    return prune_payload(payload)

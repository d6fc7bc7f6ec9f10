# devicehub/schemas/views.py
"""
Conversion of service records to JSON-ready dictionaries.
"""
from devicehub.core.clock import iso
from devicehub.repositories.base import DeviceRecord, ReceivedShareRecord, SentShareRecord, UserRecord


def user_to_dict(u: UserRecord) -> dict:
    return {
        "id": str(u.id),
        "name": u.name,
        "phone": u.phone,
        "email": u.email,
        "role": u.role.value,
        "created_at": iso(u.created_at),
    }


def device_to_dict(d: DeviceRecord) -> dict:
    out = {
        "id": str(d.id),
        "device_code": d.device_code,
        "device_name": d.device_name,
        "assigned_to": str(d.owner_id) if d.owner_id else None,
        "m2m_number": d.m2m_number,
        "is_active": d.is_active,
        "allocated_at": iso(d.allocated_at),
        "created_at": iso(d.created_at),
        "has_qr_code": d.has_qr_code,
    }
    if d.owner_name is not None:
        out["assigned_user_name"] = d.owner_name
    return out


def sent_share_to_dict(s: SentShareRecord) -> dict:
    return {
        "device_id": str(s.device_id),
        "device_code": s.device_code,
        "device_name": s.device_name,
        "shared_with_user_id": str(s.recipient_id),
        "shared_with_name": s.recipient_name,
        "shared_with_phone": s.recipient_phone,
        "shared_at": iso(s.shared_at),
    }


def received_share_to_dict(s: ReceivedShareRecord) -> dict:
    return {
        "device_id": str(s.device_id),
        "device_code": s.device_code,
        "device_name": s.device_name,
        "owner_id": str(s.owner_id),
        "owner_name": s.owner_name,
        "shared_at": iso(s.shared_at),
    }


def reading_to_dict(row: dict) -> dict:
    out = dict(row)
    out["recorded_at"] = iso(row.get("recorded_at"))
    return out

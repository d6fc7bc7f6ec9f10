# devicehub/api/v1/routers/devices.py
"""
Device endpoints: provisioning, claim/reassign, sharing, QR and telemetry.

Static paths are declared before "/{device_code}" so they are not captured
by the code parameter. Device codes are validated by the registry (400
INVALID_DEVICE_CODE); device ids are UUID path parameters (400 on a
malformed id). A customer asking for a device they cannot see gets the same
404 as for a device that does not exist.
"""
import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from devicehub.api.v1.deps import (
    get_device_registry,
    get_identity_service,
    get_sharing_ledger,
    get_telemetry_reader,
    require_operation,
)
from devicehub.repositories.base import UserRecord
from devicehub.schemas.device import (
    BulkGenerateIn,
    ClaimIn,
    DeviceCreateIn,
    M2mUpdateIn,
    ReassignIn,
    ShareIn,
)
from devicehub.schemas.views import (
    device_to_dict,
    reading_to_dict,
    received_share_to_dict,
    sent_share_to_dict,
)
from devicehub.services.devices import DeviceRegistry
from devicehub.services.identity import IdentityService
from devicehub.services.sharing import SharingLedger
from devicehub.services.telemetry import TelemetryReader

router = APIRouter(prefix="/devices", tags=["devices"])


# ==============================================================================
# I. Provisioning (admin)
# ==============================================================================
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_device(
    body: DeviceCreateIn,
    _: UserRecord = Depends(require_operation("device.create")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """
    Add a single device, optionally assigned to a user right away.

    Error codes:
        - INVALID_DEVICE_CODE: Code is not exactly 16 digits
        - DUPLICATE_CODE: Code already registered
        - UNKNOWN_OWNER: assigned_to does not resolve to a user
    """
    device = await registry.create_device(body.device_code, body.device_name, body.assigned_to)
    return {"success": True, "message": "Device added successfully", "data": {"device": device_to_dict(device)}}


@router.post("/generate-bulk", status_code=status.HTTP_201_CREATED)
async def generate_bulk(
    body: BulkGenerateIn,
    _: UserRecord = Depends(require_operation("device.generate_bulk")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """
    Generate `count` unowned devices with random codes and QR images.

    Partial success is reported, not raised: units that could not get a
    unique code are listed in `errors`.
    """
    result = await registry.generate_bulk(body.count)
    return {
        "success": True,
        "message": f"Generated {result.total_generated} of {result.total_requested} devices",
        "data": {
            "devices": [device_to_dict(d) for d in result.devices],
            "errors": result.errors,
            "total_generated": result.total_generated,
            "total_requested": result.total_requested,
        },
    }


# ==============================================================================
# II. Listings
# ==============================================================================
@router.get("/list")
async def list_devices(
    actor: UserRecord = Depends(require_operation("device.list")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """Customers get the devices they own; admins get every device with its owner's name."""
    devices = await registry.list_for(actor)
    return {"success": True, "data": [device_to_dict(d) for d in devices], "total": len(devices)}


@router.get("/my")
async def my_devices(
    actor: UserRecord = Depends(require_operation("device.list")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    devices = await registry.list_owned(actor, actor.id)
    return {"success": True, "data": [device_to_dict(d) for d in devices], "total": len(devices)}


@router.get("/customers")
async def customers(
    actor: UserRecord = Depends(require_operation("customer.directory")),
    identity: IdentityService = Depends(get_identity_service),
):
    """Customer directory used to pick a share recipient (excludes the caller)."""
    rows = await identity.list_customers(exclude_id=actor.id)
    return {
        "success": True,
        "data": [{"id": str(u.id), "name": u.name, "phone": u.phone} for u in rows],
        "total": len(rows),
    }


@router.get("/owned/{user_id}")
async def owned_devices(
    user_id: uuid.UUID,
    actor: UserRecord = Depends(require_operation("device.list")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    devices = await registry.list_owned(actor, user_id)
    return {"success": True, "data": [device_to_dict(d) for d in devices], "total": len(devices)}


# ==============================================================================
# III. Ownership & Sharing
# ==============================================================================
@router.post("/assign")
async def claim_device(
    body: ClaimIn,
    actor: UserRecord = Depends(require_operation("device.claim")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """
    Claim an unowned device by its code.

    Error codes:
        - INVALID_DEVICE_CODE
        - DEVICE_NOT_FOUND
        - ALREADY_OWNED: Someone claimed it first (409)
    """
    device = await registry.claim_device(body.device_code, actor, body.device_name)
    return {"success": True, "message": "Device assigned successfully", "data": {"device": device_to_dict(device)}}


@router.post("/share")
async def share_device(
    body: ShareIn,
    actor: UserRecord = Depends(require_operation("share.create")),
    ledger: SharingLedger = Depends(get_sharing_ledger),
):
    """
    Share a device the caller owns with another customer.

    Error codes:
        - NOT_OWNER: Caller does not own the device, or it does not exist
        - INVALID_PHONE / RECIPIENT_NOT_FOUND
        - INVALID_INPUT: Sharing with oneself
        - ALREADY_SHARED: Grant exists (409)
    """
    recipient = await ledger.share(body.deviceId, actor, body.recipientPhone)
    return {
        "success": True,
        "message": f"Device shared successfully with {recipient.name}",
        "data": {"recipient": {"id": str(recipient.id), "name": recipient.name, "phone": recipient.phone}},
    }


@router.get("/sent/{user_id}")
async def sent_shares(
    user_id: uuid.UUID,
    actor: UserRecord = Depends(require_operation("share.list")),
    ledger: SharingLedger = Depends(get_sharing_ledger),
):
    rows = await ledger.list_sent_by(actor, user_id)
    return {"success": True, "data": [sent_share_to_dict(s) for s in rows], "total": len(rows)}


@router.get("/received/{user_id}")
async def received_shares(
    user_id: uuid.UUID,
    actor: UserRecord = Depends(require_operation("share.list")),
    ledger: SharingLedger = Depends(get_sharing_ledger),
):
    rows = await ledger.list_received_by(actor, user_id)
    return {"success": True, "data": [received_share_to_dict(s) for s in rows], "total": len(rows)}


# ==============================================================================
# IV. Telemetry (by device id)
# ==============================================================================
async def _series(reader: TelemetryReader, actor: UserRecord, device_id: uuid.UUID, kind: str, limit):
    rows = await reader.readings(actor, device_id, kind, limit)
    return {"success": True, "data": [reading_to_dict(r) for r in rows], "total": len(rows)}


@router.get("/{device_id}/pressure")
async def pressure(
    device_id: uuid.UUID,
    limit: int | None = Query(default=None, ge=1),
    actor: UserRecord = Depends(require_operation("telemetry.view")),
    reader: TelemetryReader = Depends(get_telemetry_reader),
):
    return await _series(reader, actor, device_id, "pressure", limit)


@router.get("/{device_id}/temperature")
async def temperature(
    device_id: uuid.UUID,
    limit: int | None = Query(default=None, ge=1),
    actor: UserRecord = Depends(require_operation("telemetry.view")),
    reader: TelemetryReader = Depends(get_telemetry_reader),
):
    return await _series(reader, actor, device_id, "temperature", limit)


@router.get("/{device_id}/distance")
async def distance(
    device_id: uuid.UUID,
    limit: int | None = Query(default=None, ge=1),
    actor: UserRecord = Depends(require_operation("telemetry.view")),
    reader: TelemetryReader = Depends(get_telemetry_reader),
):
    return await _series(reader, actor, device_id, "distance", limit)


@router.get("/{device_id}/latest-readings")
async def latest_readings(
    device_id: uuid.UUID,
    actor: UserRecord = Depends(require_operation("telemetry.view")),
    reader: TelemetryReader = Depends(get_telemetry_reader),
):
    latest = await reader.latest(actor, device_id)
    return {
        "success": True,
        "data": {kind: reading_to_dict(row) if row else None for kind, row in latest.items()},
    }


# ==============================================================================
# V. Single device (by code)
# ==============================================================================
@router.get("/{device_code}")
async def get_device(
    device_code: str,
    actor: UserRecord = Depends(require_operation("device.view")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    device = await registry.get_by_code(actor, device_code)
    return {"success": True, "data": {"device": device_to_dict(device)}}


@router.get("/{device_code}/qr")
async def device_qr(
    device_code: str,
    actor: UserRecord = Depends(require_operation("device.qr")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    png = await registry.qr_image(actor, device_code)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="device-{device_code}.png"'},
    )


@router.put("/{device_code}/assign")
async def reassign_device(
    device_code: str,
    body: ReassignIn,
    actor: UserRecord = Depends(require_operation("device.reassign")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """Assign, reassign or (with assigned_to = null) unassign a device."""
    device = await registry.reassign(device_code, body.assigned_to, actor)
    message = "Device assigned successfully" if device.owner_id else "Device unassigned successfully"
    return {"success": True, "message": message, "data": {"device": device_to_dict(device)}}


@router.put("/{device_code}/m2m")
async def update_m2m(
    device_code: str,
    body: M2mUpdateIn,
    _: UserRecord = Depends(require_operation("device.update_m2m")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    device = await registry.update_m2m(device_code, body.m2m_number)
    return {"success": True, "message": "M2M number updated successfully", "data": {"device": device_to_dict(device)}}


@router.delete("/{device_code}/revoke/{user_id}")
async def revoke_share(
    device_code: str,
    user_id: uuid.UUID,
    actor: UserRecord = Depends(require_operation("share.revoke")),
    ledger: SharingLedger = Depends(get_sharing_ledger),
):
    await ledger.revoke(device_code, actor, user_id)
    return {"success": True, "message": "Device access revoked successfully"}


@router.delete("/{device_code}")
async def delete_device(
    device_code: str,
    actor: UserRecord = Depends(require_operation("device.delete")),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    await registry.delete(device_code, actor)
    return {"success": True, "message": "Device deleted successfully"}

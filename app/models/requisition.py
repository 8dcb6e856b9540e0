from app.utils.dates import isoformat


def requisition_helper(requisition, user=None) -> dict:
    return {
        "id": str(requisition["_id"]),
        "userId": str(requisition["user_id"]),
        "userEmail": user.get("email") if user else None,
        "name": requisition["name"],
        "department": requisition["department"],
        "purpose": requisition["purpose"],
        "requestedDate": requisition["requested_date"].date().isoformat(),
        "requestedTime": requisition["requested_time"],
        "numberOfPassengers": requisition["number_of_passengers"],
        "status": requisition["status"],
        "adminNotes": requisition.get("admin_notes"),
        "reviewedAt": isoformat(requisition.get("reviewed_at")),
        "createdAt": isoformat(requisition.get("created_at")),
    }

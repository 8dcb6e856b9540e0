from app.utils.dates import isoformat


def user_helper(user) -> dict:
    return {
        "id": str(user["_id"]),
        "name": user["name"],
        "email": user["email"],
        "role": user["role"],
        "createdAt": isoformat(user.get("created_at")),
    }

from fastapi import Depends, HTTPException, status
from app.dependencies.auth import get_current_user

def admin_required(current_user: dict = Depends(get_current_user)):
    """Only ADMIN role allowed"""
    if current_user.get("role") != "ADMIN":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user

def driver_or_admin_required(current_user: dict = Depends(get_current_user)):
    """Drivers operate their own trips; admins may act for any vehicle"""
    if current_user.get("role") not in ("DRIVER", "ADMIN"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Driver access required"
        )
    return current_user

def student_or_admin_required(current_user: dict = Depends(get_current_user)):
    if current_user.get("role") not in ("STUDENT", "ADMIN"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this resource."
        )
    return current_user

def any_role_required(current_user: dict = Depends(get_current_user)):
    """Any signed-in ADMIN, DRIVER or STUDENT"""
    if current_user.get("role") not in ("ADMIN", "DRIVER", "STUDENT"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this resource."
        )
    return current_user

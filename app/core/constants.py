"""
Application-wide constants
"""

SERVICE_NAME = "bricks-attendance-backend"

INITIAL_ADMIN_EMP_CODE = "ADM-001"

from eyecare.utils.codes import generate_client_code
from eyecare.utils.email_validation import normalize_email

__all__ = [
    "generate_client_code",
    "normalize_email",
]

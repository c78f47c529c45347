"""
hirepush-vapid: print a fresh application server key pair.

Paste the printed lines into the service's environment. VAPID_PUBLIC_KEY is
what browsers receive from /api/push/vapid-public-key; VAPID_PRIVATE_KEY
signs every push request and must stay on the server.
"""

import base64

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec


def base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_vapid_keys() -> tuple[str, str]:
    """New P-256 key pair as (public, private), both unpadded base64url."""
    private_key = ec.generate_private_key(ec.SECP256R1())

    # pywebpush takes the bare 32-byte scalar
    private_bytes = private_key.private_numbers().private_value.to_bytes(32, "big")
    # applicationServerKey is the 65-byte uncompressed point
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return base64url_encode(public_bytes), base64url_encode(private_bytes)


def env_lines(contact_email: str = "admin@example.com") -> list[str]:
    public_key, private_key = generate_vapid_keys()
    return [
        f"VAPID_PUBLIC_KEY={public_key}",
        f"VAPID_PRIVATE_KEY={private_key}",
        f"WEB_PUSH_EMAIL={contact_email}",
    ]


def main() -> None:
    print("# hirepush web push keys; rotating them invalidates every stored subscription")
    for line in env_lines():
        print(line)


if __name__ == "__main__":
    main()

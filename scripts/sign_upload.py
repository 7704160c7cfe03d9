"""
Sign a log archive and upload it to a running service.

Usage:
    python scripts/sign_upload.py logs.zip --device-id dev1 --secret <hex> [--url URL] [--title TITLE]
"""
import sys
import os
import argparse
import hashlib
import json
import time

import httpx

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from signed_upload.auth.signature import calculate_signature


def main():
    parser = argparse.ArgumentParser(
        description="Sign and upload a log archive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload with the secret from the environment
  SECRET_KEY=00ff... python scripts/sign_upload.py logs.zip --device-id dev1

  # Sign over the file part's media type instead of the request Content-Type
  python scripts/sign_upload.py logs.zip --device-id dev1 --sign-file-type
        """,
    )
    parser.add_argument("path", help="Zip archive to upload")
    parser.add_argument("--device-id", required=True)
    parser.add_argument("--secret", default=os.getenv("SECRET_KEY"), help="Hex encoded shared secret")
    parser.add_argument("--url", default="http://localhost:3000/upload-logs")
    parser.add_argument("--title", default=None)
    parser.add_argument("--sign-file-type", action="store_true",
                        help="Sign application/zip (server runs with SIGNATURE_CONTENT_TYPE_SOURCE=file)")
    args = parser.parse_args()

    if not args.secret:
        parser.error("--secret or SECRET_KEY is required")

    with open(args.path, "rb") as f:
        data = f.read()

    file_name = os.path.basename(args.path)
    file_hash = hashlib.sha256(data).hexdigest()
    timestamp = str(int(time.time()))
    boundary = f"signed-upload-{file_hash[:16]}"
    content_type = f"multipart/form-data; boundary={boundary}"
    signed_type = "application/zip" if args.sign_file_type else content_type

    signature = calculate_signature(timestamp, signed_type, args.device_id, file_hash, bytes.fromhex(args.secret))

    response = httpx.post(
        args.url,
        # httpx uses the boundary given in the Content-Type header
        files={"title": (None, args.title or file_name), "file": (file_name, data, "application/zip")},
        headers={
            "Content-Type": content_type,
            "x-timestamp": timestamp,
            "x-signature": signature,
            "x-device-id": args.device_id,
            "x-file-hash": file_hash,
        },
        timeout=120.0,
    )
    print(f"HTTP {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    return 0 if response.is_success else 1


if __name__ == "__main__":
    sys.exit(main())

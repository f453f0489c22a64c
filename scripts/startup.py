#!/usr/bin/env python3
"""
Startup script for container deployments.
Runs migrations, makes sure the superuser exists and starts the API.
"""

import os
import subprocess
import sys


def run_command(cmd: list[str], description: str) -> bool:
    """Run a command and return success status."""
    print(f"\n=== {description} ===")
    try:
        subprocess.run(cmd, check=True)
        return True
    except subprocess.CalledProcessError as e:
        print(f"Warning: {description} failed with code {e.returncode}")
        return False


def main():
    print("\n" + "=" * 50)
    print("Academy Admin Startup Script")
    print("=" * 50)

    if not run_command(["alembic", "upgrade", "head"], "Running database migrations"):
        sys.exit(1)

    email = os.environ.get("SUPER_ADMIN_EMAIL", "").strip()
    if email:
        name = os.environ.get("SUPER_ADMIN_NAME", "").strip()
        run_command(
            [sys.executable, "scripts/create_super_admin.py", "--email", email, "--name", name],
            "Ensuring superuser",
        )
    else:
        print("\nSkipping superuser setup (SUPER_ADMIN_EMAIL not set)")

    port = os.environ.get("PORT", "8000")
    print(f"\n=== Starting uvicorn on port {port} ===\n")

    os.execvp("uvicorn", [
        "uvicorn",
        "academy_admin.main:app",
        "--host", "0.0.0.0",
        "--port", port,
    ])


if __name__ == "__main__":
    main()

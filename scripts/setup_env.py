#!/usr/bin/env python3
"""Interactively generate the .env configuration file.

Usage:
    python scripts/setup_env.py
"""
import os

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_FILE = os.path.join(PROJECT_ROOT, ".env")


# (env_key, description, default, required)
CONFIG_ITEMS = [
    # === Branding ===
    ("COMPANY_NAME", "Company name shown in exports and emails", "Kraft Universe", False),
    ("APP_NAME", "Application name", "Workshop Tracker", False),

    # === Database ===
    ("DATABASE_URL", "Database connection URL", "sqlite:///data/workshop.db", False),

    # === Web ===
    ("WEB_HOST", "API listen address", "0.0.0.0", False),
    ("WEB_PORT", "API listen port", "3000", False),
    ("TOKEN_TTL_HOURS", "Login token lifetime in hours", "24", False),

    # === Sign-up ===
    ("ALLOWED_EMAIL_DOMAINS", "Sign-up email domains (JSON list)",
     '["kraftstories.com","kraftuniverse.com"]', False),

    # === Notifications ===
    ("NOTIFICATIONS_ENABLED", "Send admin emails for new records", "true", False),
    ("FUNCTIONS_BASE_URL", "Notification function base URL",
     "http://localhost:54321/functions/v1", False),
    ("FUNCTIONS_API_KEY", "Notification function API key", "", False),
    ("FRONTEND_URL", "Web app address linked from emails", "http://localhost:5173", False),

    # === Files ===
    ("UPLOAD_DIR", "Uploaded documents directory", "data/uploads", False),
    ("EXPORT_DIR", "Offline export directory", "data/exports", False),
]

SECTION_NAMES = {
    "COMPANY": "# === Branding ===",
    "APP": "# === Branding ===",
    "DATABASE": "# === Database ===",
    "WEB": "# === Web ===",
    "TOKEN": "# === Web ===",
    "ALLOWED": "# === Sign-up ===",
    "NOTIFICATIONS": "# === Notifications ===",
    "FUNCTIONS": "# === Notifications ===",
    "UPLOAD": "# === Files ===",
    "EXPORT": "# === Files ===",
}


def main():
    print()
    print("=" * 60)
    print("  Workshop Tracker setup")
    print("  Generates the .env configuration file")
    print("=" * 60)
    print()

    if os.path.exists(ENV_FILE):
        print(f"An .env file already exists: {ENV_FILE}")
        choice = input("Overwrite? (y/N): ").strip().lower()
        if choice != "y":
            print("Cancelled.")
            return
        print()

    env_lines = [
        "# Workshop Tracker configuration",
        "# Generated by scripts/setup_env.py",
    ]

    for key, desc, default, required in CONFIG_ITEMS:
        header = SECTION_NAMES.get(key.split("_")[0], "# === Other ===")
        if header not in env_lines:
            env_lines.append("")
            env_lines.append(header)

        req_tag = " [required]" if required else ""
        default_hint = f" (default: {default})" if default else ""
        print(f"{desc}{req_tag}")

        while True:
            value = input(f"  {key}={default_hint}: ").strip()
            if not value:
                value = default
            if required and not value:
                print(f"  {key} is required.")
                continue
            break

        env_lines.append(f"{key}={value}")
        print()

    with open(ENV_FILE, "w", encoding="utf-8") as f:
        f.write("\n".join(env_lines) + "\n")

    print("=" * 60)
    print(f"  Configuration written to {ENV_FILE}")
    print()
    print("  Next steps:")
    print("    python scripts/init_db.py --admin-email <email> --admin-password <password>")
    print("    python app.py")
    print("=" * 60)


if __name__ == "__main__":
    main()

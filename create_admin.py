# create_admin.py
import asyncio
import sys
from getpass import getpass  # Untuk input password tersembunyi

try:
    from app.core.accounts import create_account
    from app.core.exceptions import InventoryError
    from app.db.database import init_db
    from app.db.store import InventoryStore
    from app.models.enum import UserRole
    from app.models.user import UserAccount
except ImportError as e:
    print(f"Error importing application modules: {e}")
    print("Pastikan Anda menjalankan skrip dari root direktori proyek dan venv aktif.")
    sys.exit(1)


async def create_initial_admin():
    """Skrip untuk membuat akun admin tambahan di store yang dikonfigurasi."""
    print("--- Create Admin Account ---")

    try:
        store = InventoryStore(await init_db())
    except Exception as e:
        print(f"Error connecting to storage: {e}")
        return

    while True:
        username = input("Enter admin username: ").strip()
        if username:
            break
        print("Username cannot be empty.")

    while True:
        password = getpass("Enter admin password: ")
        if password:
            password_confirm = getpass("Confirm admin password: ")
            if password == password_confirm:
                break
            print("Passwords do not match. Please try again.")
        else:
            print("Password cannot be empty.")

    try:
        account = await create_account(
            store,
            UserAccount.Create(username=username, password=password, role=UserRole.ADMIN, is_active=True),
            actor="system",
        )
        print(f"Admin account '{account.username}' created successfully!")
    except InventoryError as e:
        print(f"Error: {e.detail}")
    finally:
        await store.close()
        print("Storage connection closed.")


if __name__ == "__main__":
    print("Starting admin creation script...")
    asyncio.run(create_initial_admin())
    print("Script finished.")

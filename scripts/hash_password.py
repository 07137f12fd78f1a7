"""
Хэширование пароля администратора для ADMIN_PASSWORD.

Использование:
    python scripts/hash_password.py
"""

import getpass
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from vxschool.auth.jwt import hash_password


def main():
    """Запрашивает пароль и печатает строку для .env."""
    password = getpass.getpass("🔐 Введите пароль администратора: ")
    if not password:
        print("❌ Ошибка: Пароль не может быть пустым")
        sys.exit(1)

    confirm = getpass.getpass("🔐 Повторите пароль: ")
    if password != confirm:
        print("❌ Ошибка: Пароли не совпадают")
        sys.exit(1)

    print("\nДобавьте в .env:")
    print(f"ADMIN_PASSWORD={hash_password(password)}")


if __name__ == "__main__":
    main()

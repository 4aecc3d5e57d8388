"""
Управление проектом - CLI команды.

Использование:
    python manage.py create-tables
    python manage.py check-db
    python manage.py reset-db
    python manage.py seed-db
    python manage.py promote-admin user@example.com
    python manage.py promote-admin user@example.com --revoke
"""

import argparse
from datetime import timedelta

from sample_app.core.database import Base, SessionLocal, engine
from sample_app.core.errors import NotFound, ValidationError
from sample_app.core.models import Micropost, Relationship, User, utcnow
from sample_app.services.identity_service import IdentityService
from sample_app.services.micropost_service import MicropostService
from sample_app.services.relationship_service import RelationshipService


def check_db(args):
    """Проверка базы данных - показать всех пользователей"""
    db = SessionLocal()

    try:
        users = db.query(User).order_by(User.id).all()

        print(f"\n📊 Всего пользователей в БД: {len(users)}\n")
        print("=" * 60)

        if not users:
            print("⚠️  База данных пустая.")
            print("   Зарегистрируйте пользователя через POST /api/v1/users\n")
            return

        for user in users:
            posts = db.query(Micropost).filter(Micropost.user_id == user.id).count()
            following = db.query(Relationship).filter(Relationship.follower_id == user.id).count()
            print(f"ID: {user.id}")
            print(f"Имя: {user.name}")
            print(f"Email: {user.email}")
            print(f"Админ: {'да' if user.admin else 'нет'}")
            print(f"Постов: {posts}, подписок: {following}")
            print(f"Создан: {user.created_at}")
            print("-" * 60)

    finally:
        db.close()


def reset_db(args):
    """Сброс базы данных (удалить все таблицы и создать заново)"""
    print("⚠️  ВНИМАНИЕ: Это удалит все данные из БД!")
    confirm = input("Продолжить? (yes/no): ")

    if confirm.lower() != "yes":
        print("❌ Отменено")
        return

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("✅ База данных сброшена\n")


def seed_db(args):
    """Заполнить БД тестовыми пользователями, постами и подписками"""
    db = SessionLocal()
    identities = IdentityService(db)

    test_users = [
        {"name": "Example User", "email": "example@railstutorial.org", "password": "foobar"},
        {"name": "Second User", "email": "second@example.com", "password": "foobar"},
        {"name": "Third User", "email": "third@example.com", "password": "foobar"},
    ]

    try:
        created = []
        for user_data in test_users:
            try:
                user = identities.create(
                    user_data["name"], user_data["email"], user_data["password"], user_data["password"]
                )
            except ValidationError as e:
                print(f"⚠️  Пользователь {user_data['email']} пропущен: {e}")
                continue
            created.append(user)
            print(f"✅ Создан пользователь: {user.email}")

        if not created:
            return

        posts = MicropostService(db)
        now = utcnow()
        for user in created:
            for hours_ago in range(3):
                posts.create(
                    user.id,
                    f"Post by {user.name}, {hours_ago} hours ago",
                    created_at=now - timedelta(hours=hours_ago),
                )

        graph = RelationshipService(db)
        first = created[0]
        for other in created[1:]:
            graph.follow(first.id, other.id)
            graph.follow(other.id, first.id)

        identities.set_admin(first.id, True)
        print(f"\n✅ Тестовые данные добавлены, админ: {first.email}\n")
    finally:
        db.close()


def create_tables(args):
    """Создать таблицы в БД (если их нет)"""
    Base.metadata.create_all(bind=engine)
    print("✅ Таблицы созданы\n")


def promote_admin(args):
    """Выдать или снять права администратора"""
    db = SessionLocal()
    try:
        identities = IdentityService(db)
        user = identities.find_by_email(args.email)
        identities.set_admin(user.id, not args.revoke)
        print(f"✅ {user.email}: admin={'нет' if args.revoke else 'да'}\n")
    except NotFound:
        print(f"❌ Пользователь {args.email} не найден")
    finally:
        db.close()


def main():
    """Главная функция - обработка команд"""
    parser = argparse.ArgumentParser(description="Управление проектом Sample App API")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check-db", help="Показать пользователей").set_defaults(func=check_db)
    subparsers.add_parser("reset-db", help="Пересоздать таблицы").set_defaults(func=reset_db)
    subparsers.add_parser("seed-db", help="Тестовые данные").set_defaults(func=seed_db)
    subparsers.add_parser("create-tables", help="Создать таблицы").set_defaults(func=create_tables)

    promote = subparsers.add_parser("promote-admin", help="Права администратора")
    promote.add_argument("email")
    promote.add_argument("--revoke", action="store_true", help="Снять права")
    promote.set_defaults(func=promote_admin)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()

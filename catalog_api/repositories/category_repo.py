# catalog_api/repositories/category_repo.py
from sqlmodel import Session, select

from catalog_api.models.category import Category


class CategoryRepository:

    def get_by_id(self, session: Session, category_id: int) -> Category | None:
        return session.get(Category, category_id)

    def get_by_name(self, session: Session, name: str) -> Category | None:
        stmt = select(Category).where(Category.name == name)
        return session.exec(stmt).first()

    def get_by_slug(self, session: Session, slug: str) -> Category | None:
        stmt = select(Category).where(Category.slug == slug)
        return session.exec(stmt).first()

    def list(self, session: Session) -> list[Category]:
        stmt = select(Category).order_by(Category.id.desc())
        return list(session.exec(stmt).all())

    # CRUD (flush only; the service owns the transaction)
    def create(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.flush()
        return category

    def update(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.flush()
        return category

    def delete(self, session: Session, category: Category) -> None:
        session.delete(category)
        session.flush()

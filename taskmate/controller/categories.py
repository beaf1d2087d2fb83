from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskmate.controller.auth import get_current_user
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.model.category import Category
from taskmate.model.task import Task
from taskmate.schemas.category import CategoryCreate, CategoryResponse
from taskmate.utils.response import success, fail

router = APIRouter()


@router.get("")
async def get_categories(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    categories = db.query(Category).filter(
        Category.user_id == current_user.user_id
    ).order_by(Category.name.asc()).all()
    return success([CategoryResponse.model_validate(category) for category in categories], count=len(categories))


@router.post("")
async def create_category(
    category: CategoryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    existing = db.query(Category).filter(
        Category.user_id == current_user.user_id,
        Category.name == category.name,
    ).first()
    if existing:
        return fail("Category already exists")

    try:
        db_category = Category(user_id=current_user.user_id, name=category.name, color=category.color)
        db.add(db_category)
        db.commit()
        db.refresh(db_category)
        return success(CategoryResponse.model_validate(db_category), msg="Category created")
    except Exception as e:
        db.rollback()
        return fail(f"Failed to create category: {str(e)}")


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Delete a category; its tasks are kept without one
    """
    category = db.query(Category).filter(
        Category.category_id == category_id,
        Category.user_id == current_user.user_id,
    ).first()
    if not category:
        return fail("Category not found")

    try:
        db.query(Task).filter(
            Task.user_id == current_user.user_id,
            Task.category_id == category_id,
        ).update({Task.category_id: None}, synchronize_session=False)
        db.delete(category)
        db.commit()
        return success(msg="Category deleted")
    except Exception as e:
        db.rollback()
        return fail(f"Failed to delete category: {str(e)}")

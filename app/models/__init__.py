from app.models.records import (  # noqa: F401
    InsightModel,
    ReceiptModel,
    SpendingCategoryModel,
    UserModel,
)

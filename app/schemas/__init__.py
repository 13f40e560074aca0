from app.schemas.base import (  # noqa: F401
    ApiModel,
    Categorization,
    CategoryTotal,
    ExtractedLineItem,
    ExtractedReceiptData,
    GeneratedInsight,
    INSIGHT_TYPES,
    Insight,
    InsightCreate,
    InsightUpdate,
    LineItem,
    Receipt,
    ReceiptCreate,
    ReceiptUpdate,
    SpendingCategory,
    SpendingCategoryCreate,
    User,
    UserCreate,
)
from app.schemas.api import (  # noqa: F401
    ChatRequest,
    ChatResponse,
    GenerateInsightRequest,
    InsightResponse,
    InsightsResponse,
    ProcessReceiptResponse,
    ReceiptChatResponse,
    ReceiptInfo,
    ReceiptListResponse,
    SpendingAnalysisResponse,
    SpendingCategoriesResponse,
    WalletPassEnvelope,
    WalletPassResponse,
)

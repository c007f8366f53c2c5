"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from domain.catalog import Product, ReferenceItem, Vendor
from domain.client import Client
from domain.sale import Sale, SaleComment
from domain.sales_query import SalesPage


# ============================================================================
# Sale Models
# ============================================================================

class SaleUserModel(BaseModel):
    """Participant of a group sale."""
    name: str
    email: str
    phone: Optional[str] = None


class CommentResponse(BaseModel):
    """Single comment in a sale's thread."""
    id: str
    message: str
    created_by: str
    created_by_name: str
    created_at: datetime

    @classmethod
    def from_comment(cls, comment: SaleComment) -> "CommentResponse":
        return cls(
            id=comment.comment_id,
            message=comment.message,
            created_by=comment.created_by,
            created_by_name=comment.created_by_name,
            created_at=comment.created_at,
        )


class SaleResponse(BaseModel):
    """Sale record in API responses."""
    id: str
    sale_type: str
    client_id: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    product_id: str
    product_name: str
    vendor_id: str
    vendor_name: str
    amount: Decimal
    currency: str
    usd_amount: Decimal
    date: datetime
    payment_method: str
    source: str
    week: int
    iteration: int
    evidence_type: Optional[str] = None
    evidence_value: Optional[str] = None
    status: str
    users: List[SaleUserModel] = []
    comments: List[CommentResponse] = []
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "juanc2587-hotmail-com-2025-01-06-chatgpt-live-workshop",
                "sale_type": "individual",
                "client_id": "juanc2587-hotmail-com",
                "customer_name": "Juan Carlos",
                "customer_email": "juanc2587@hotmail.com",
                "product_id": "chatgpt-live-workshop",
                "product_name": "ChatGPT Live Workshop",
                "vendor_id": "ana-crm-com",
                "vendor_name": "Ana",
                "amount": "3660.22",
                "currency": "MXN",
                "usd_amount": "200.00",
                "date": "2025-01-06T00:00:00Z",
                "payment_method": "transfer",
                "source": "hotmart",
                "week": 1,
                "iteration": 1,
                "status": "pending",
                "users": [],
                "comments": [],
                "created_by": "ana-crm-com",
                "created_at": "2025-01-06T15:30:00Z"
            }
        }

    @classmethod
    def from_sale(cls, sale: Sale) -> "SaleResponse":
        return cls(
            id=sale.sale_id,
            sale_type=sale.sale_type.value,
            client_id=sale.client_id,
            customer_name=sale.customer_name,
            customer_email=sale.customer_email,
            customer_phone=sale.customer_phone,
            product_id=sale.product_id,
            product_name=sale.product_name,
            vendor_id=sale.vendor_id,
            vendor_name=sale.vendor_name,
            amount=sale.amount,
            currency=sale.currency.value,
            usd_amount=sale.usd_amount,
            date=sale.date,
            payment_method=sale.payment_method,
            source=sale.source,
            week=sale.week,
            iteration=sale.iteration,
            evidence_type=sale.evidence_type,
            evidence_value=sale.evidence_value,
            status=sale.status.value,
            users=[SaleUserModel(name=u.name, email=u.email, phone=u.phone) for u in sale.users],
            comments=[CommentResponse.from_comment(c) for c in sale.comments],
            created_by=sale.created_by,
            created_at=sale.created_at,
            updated_at=sale.updated_at,
        )


class SalesPageResponse(BaseModel):
    """One page of the sales listing."""
    items: List[SaleResponse]
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def from_page(cls, page: SalesPage) -> "SalesPageResponse":
        return cls(
            items=[SaleResponse.from_sale(sale) for sale in page.sales],
            next_cursor=page.next_cursor.encode() if page.next_cursor else None,
            prev_cursor=page.prev_cursor.encode() if page.prev_cursor else None,
            has_next_page=page.has_next_page,
            has_prev_page=page.has_prev_page,
        )


class SaleCreateRequest(BaseModel):
    """
    Sale form submission.

    Amounts are free text (e.g. "1.234,50" or "$200") and are normalized
    server-side; field problems come back as a 422 with per-field errors.
    """
    client_name: str = ""
    client_email: str = ""
    client_phone: Optional[str] = None
    selected_client_id: Optional[str] = Field(
        None,
        description="Existing client picked in the form, or null for a new customer"
    )
    product_id: str = ""
    sale_value: str = ""
    currency: str = ""
    usd_value: Optional[str] = None
    sale_date: Optional[date] = None
    payment_method: str = ""
    source: str = ""
    week: str = ""
    iteration: str = ""
    evidence_type: Optional[str] = None
    evidence_value: Optional[str] = None
    users: List[SaleUserModel] = []

    class Config:
        json_schema_extra = {
            "example": {
                "client_name": "Juan Carlos",
                "client_email": "juanc2587@hotmail.com",
                "product_id": "chatgpt-live-workshop",
                "sale_value": "3660,22",
                "currency": "MXN",
                "usd_value": "200",
                "sale_date": "2025-01-06",
                "payment_method": "transfer",
                "source": "hotmart",
                "week": "1",
                "iteration": "1",
                "evidence_type": "transaction_number",
                "evidence_value": "HP12345678"
            }
        }


class SaleCreatedResponse(BaseModel):
    """Result of a sale registration."""
    sale: SaleResponse
    client_id: str
    deactivated_client_id: Optional[str] = None


class ReviewRequest(BaseModel):
    """Approve or reject a pending sale."""
    status: str = Field(..., description="'approved' or 'rejected'")
    message: Optional[str] = None


class CommentRequest(BaseModel):
    message: str = Field(..., min_length=1)


class SalesStatsResponse(BaseModel):
    """Pending/approved KPI cards of the sales page."""
    pending_count: int
    approved_count: int
    pending_amount: Decimal
    approved_amount: Decimal


# ============================================================================
# Client Models
# ============================================================================

class ClientResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    active: bool
    created_at: datetime
    last_purchase_at: Optional[datetime] = None
    users: List[SaleUserModel] = []

    @classmethod
    def from_client(cls, client: Client) -> "ClientResponse":
        return cls(
            id=client.client_id,
            name=client.name,
            email=client.email,
            phone=client.phone,
            active=client.active,
            created_at=client.created_at,
            last_purchase_at=client.last_purchase_at,
            users=[SaleUserModel(name=u.name, email=u.email, phone=u.phone) for u in client.users],
        )


class ClientCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None


# ============================================================================
# Catalog Models
# ============================================================================

class ProductResponse(BaseModel):
    id: str
    name: str
    sku: str
    base_currency: str
    base_price: Decimal
    active: bool
    created_at: datetime

    @classmethod
    def from_product(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.product_id,
            name=product.name,
            sku=product.sku,
            base_currency=product.base_currency.value,
            base_price=product.base_price,
            active=product.active,
            created_at=product.created_at,
        )


class ProductCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    base_currency: str = "USD"
    base_price: Decimal = Field(..., gt=0)
    id: Optional[str] = Field(None, description="Defaults to the SKU")


class ProductStatusRequest(BaseModel):
    active: bool


class VendorResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    active: bool
    position: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_vendor(cls, vendor: Vendor) -> "VendorResponse":
        return cls(
            id=vendor.vendor_id,
            name=vendor.name,
            email=vendor.email,
            role=vendor.role.value,
            active=vendor.active,
            position=vendor.position,
            photo_url=vendor.photo_url,
            created_at=vendor.created_at,
            updated_at=vendor.updated_at,
        )


class VendorCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    role: str = "seller"
    position: Optional[str] = None


class VendorUpdateRequest(BaseModel):
    """Partial vendor update; omitted fields are left as they are."""
    name: Optional[str] = None
    role: Optional[str] = None
    position: Optional[str] = None
    active: Optional[bool] = None


class ReferenceItemResponse(BaseModel):
    id: str
    name: str

    @classmethod
    def from_item(cls, item: ReferenceItem) -> "ReferenceItemResponse":
        return cls(id=item.item_id, name=item.name)


# ============================================================================
# Dashboard Models
# ============================================================================

class MetricResponse(BaseModel):
    """One KPI card: a value, or the error that prevented computing it."""
    value: Optional[Decimal] = None
    error: Optional[str] = None


class DashboardResponse(BaseModel):
    metrics: Dict[str, MetricResponse]

    class Config:
        json_schema_extra = {
            "example": {
                "metrics": {
                    "total_sales_usd": {"value": "12500.00", "error": None},
                    "clients": {"value": "42", "error": None},
                    "active_products": {"value": "6", "error": None},
                    "sellers": {"value": None, "error": "Failed to get sellers count: timeout"}
                }
            }
        }


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Invalid request",
                "detail": "Sale not found",
                "status_code": 404
            }
        }


class ValidationErrorResponse(BaseModel):
    """Field-level validation errors of a sale submission."""
    errors: Dict[str, str]

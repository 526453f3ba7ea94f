"""
Order/receipt data model.

Incoming orders come from several POS front-ends whose payloads differ in
which fields they send, so every field is optional with a safe default and
an explicit ``null`` means "use the default". JSON keys are camelCase;
Python attributes are snake_case.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is not None or info.field_name is None:
            return v
        field = cls.model_fields[info.field_name]
        if field.default_factory is not None:
            return field.default_factory()  # type: ignore[call-arg]
        return field.default


def _empty_list(v: Any) -> Any:
    # Some POS clients send "" instead of an empty list
    return [] if v == "" else v


def display_invoice_no(value: Any) -> str:
    """
    Normalize an invoice/order identifier that may arrive as a string or a
    JSON number. Integral numbers print without a decimal point.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return str(value.to_integral_value())
    return str(value)


class OrderItem(_CamelModel):
    name: str = ""
    quantity: int = Field(default=0, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    sku: str = ""
    item_note: str = ""
    variant: str = ""
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    children: List["OrderItem"] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def _children(cls, v: Any) -> Any:
        return _empty_list(v)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class TaxItem(_CamelModel):
    name: str = ""
    rate: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")


class ChargeItem(_CamelModel):
    name: str = ""
    amount: Decimal = Decimal("0")


class DiscountItem(_CamelModel):
    name: str = ""
    amount: Decimal = Decimal("0")


class PaymentItem(_CamelModel):
    mode: str = ""
    amount: Decimal = Decimal("0")


class StoreInfo(_CamelModel):
    name: str = ""
    display_name: str = ""
    brand_name: str = ""
    store_group_name: str = ""
    header_text: str = ""
    footer_text: str = ""
    show_logo: bool = False
    logo_url: str = Field(default="", alias="logoURL")
    gst: str = ""
    address: str = ""
    city: str = ""
    contact_number: str = ""
    email: str = ""
    policy: str = ""
    fssai_state: str = ""
    fssai_central: str = ""
    cin: str = ""
    llpin: str = ""
    website: str = ""


class DisplayOptions(_CamelModel):
    # Bill
    show_tax_breakdown: bool = False
    show_discount_breakdown: bool = False
    show_payment_details: bool = False
    show_customer_info: bool = False
    show_barcode: bool = False
    show_qr_code: bool = Field(default=False, alias="showQRCode")
    qr_code_data: str = ""

    # KOT
    show_table_info: bool = False
    show_customer_name: bool = False
    show_order_number: bool = False
    show_preparation_time: bool = False
    group_by_category: bool = False


class OrderData(_CamelModel):
    invoice_no: str = ""
    date: str = ""
    customer_name: str = ""
    customer_contact: str = ""
    table_no: str = ""
    order_type: str = ""
    order_source: str = ""
    cashier_name: str = ""
    items: List[OrderItem] = Field(default_factory=list)
    sub_total: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    payment_mode: str = ""
    store_info: StoreInfo = Field(default_factory=StoreInfo)
    display_options: DisplayOptions = Field(default_factory=DisplayOptions)

    tax_breakdown: List[TaxItem] = Field(default_factory=list)
    discount_breakdown: List[DiscountItem] = Field(default_factory=list)
    charges: List[ChargeItem] = Field(default_factory=list)
    payments: List[PaymentItem] = Field(default_factory=list)

    @field_validator("invoice_no", mode="before")
    @classmethod
    def _invoice_no(cls, v: Any) -> str:
        return display_invoice_no(v)

    @field_validator("items", "tax_breakdown", "discount_breakdown", "charges", "payments", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return _empty_list(v)


class PrintRequest(_CamelModel):
    """
    Body of a print submission.
    """

    machine_id: str = ""
    printer_name: str = ""
    order_data: OrderData = Field(default_factory=OrderData)
    printer_size: str = "58mm"
    receipt_type: str = "bill"

    @field_validator("receipt_type")
    @classmethod
    def _receipt_type(cls, v: str) -> str:
        return "kot" if v.strip().lower() == "kot" else "bill"

    @field_validator("printer_size")
    @classmethod
    def _printer_size(cls, v: str) -> str:
        return v.strip().lower()


def sample_order() -> OrderData:
    """
    Demo order used for test prints from the API.
    """
    return OrderData.model_validate(
        {
            "invoiceNo": "INV-2026-001",
            "date": "28/01/2026, 01:30 PM",
            "customerName": "Saurabh Sharma",
            "customerContact": "9876543210",
            "tableNo": "T-12",
            "orderType": "Dine-In",
            "orderSource": "POS",
            "cashierName": "Rahul",
            "items": [
                {
                    "name": "Paneer Tikka Masala",
                    "quantity": 1,
                    "price": "280.00",
                    "sku": "SKU_101",
                    "itemNote": "Spicy",
                    "variant": "Full",
                    "taxAmount": "14.00",
                    "children": [{"name": "Extra Gravy", "quantity": 1, "price": "20.00"}],
                },
                {"name": "Butter Naan", "quantity": 2, "price": "40.00"},
                {
                    "name": "Veg Thali",
                    "quantity": 1,
                    "price": "350.00",
                    "variant": "Deluxe",
                    "children": [
                        {"name": "Roti", "quantity": 2, "price": 0},
                        {"name": "Rice", "quantity": 1, "price": 0},
                        {"name": "Sweet", "quantity": 1, "price": 0},
                        {"name": "Extra Papad", "quantity": 1, "price": 10},
                    ],
                },
            ],
            "subTotal": "740.00",
            "tax": "37.00",
            "total": "797.00",
            "paymentMode": "UPI",
            "storeInfo": {
                "name": "Mumbai Branch",
                "displayName": "The Food Place - Mumbai",
                "brandName": "The Food Place",
                "storeGroupName": "West Region",
                "headerText": "Welcome to The Food Place",
                "footerText": "Visit again!",
                "gst": "27ABCDE1234F1Z5",
                "address": "Shop 12, Main Street, Andheri West",
                "city": "Mumbai, Maharashtra 400053",
                "contactNumber": "022-12345678",
                "email": "contact@thefoodplace.com",
                "policy": "No refund, No exchange",
                "fssaiState": "12345678901234",
                "fssaiCentral": "98765432109876",
                "cin": "U12345MH2023PTC123456",
                "llpin": "A12345MH2023PLC123456",
                "website": "https://thefoodplace.com",
            },
            "displayOptions": {
                "showTaxBreakdown": True,
                "showDiscountBreakdown": True,
                "showPaymentDetails": True,
                "showCustomerInfo": True,
                "showQRCode": True,
                "qrCodeData": "https://thefoodplace.com/feedback/INV-2026-001",
                "showTableInfo": True,
                "showCustomerName": True,
                "showOrderNumber": True,
            },
            "taxBreakdown": [
                {"name": "CGST", "rate": 9.0, "amount": "18.50"},
                {"name": "SGST", "rate": 9.0, "amount": "18.50"},
            ],
            "charges": [{"name": "Service Charge", "amount": "20.00"}],
            "payments": [{"mode": "UPI", "amount": "797.00"}],
        }
    )


__all__ = [
    "ChargeItem",
    "DiscountItem",
    "DisplayOptions",
    "OrderData",
    "OrderItem",
    "PaymentItem",
    "PrintRequest",
    "StoreInfo",
    "TaxItem",
    "display_invoice_no",
    "sample_order",
]

"""
Raw Channel Payloads

Typed views of the Shopify Admin REST and Amazon SP-API JSON the adapters
receive. Every optional field has a default so normalization never depends
on keys being present.
"""

from decimal import Decimal
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

SourceId = Union[int, str]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# =============================================================================
# SHOPIFY
# =============================================================================

class ShopifyMoney(_Payload):
    amount: Optional[Decimal] = None
    currency_code: Optional[str] = None


class ShopifyMoneySet(_Payload):
    shop_money: ShopifyMoney = Field(default_factory=ShopifyMoney)


class ShopifyAddress(_Payload):
    city: Optional[str] = None
    province_code: Optional[str] = None
    country_code: Optional[str] = None
    zip: Optional[str] = None


class ShopifyCustomer(_Payload):
    id: Optional[SourceId] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    default_address: Optional[ShopifyAddress] = None


class ShopifyDiscountAllocation(_Payload):
    amount: Optional[Decimal] = None


class ShopifyLineItem(_Payload):
    id: SourceId
    sku: Optional[str] = None
    title: Optional[str] = None
    quantity: int = 0
    price: Optional[Decimal] = None
    price_set: Optional[ShopifyMoneySet] = None
    total_discount: Optional[Decimal] = None
    discount_allocations: List[ShopifyDiscountAllocation] = Field(default_factory=list)


class ShopifyRefundLineItem(_Payload):
    line_item_id: Optional[SourceId] = None
    quantity: int = 0
    subtotal: Optional[Decimal] = None


class ShopifyRefund(_Payload):
    id: Optional[SourceId] = None
    refund_line_items: List[ShopifyRefundLineItem] = Field(default_factory=list)


class ShopifyOrder(_Payload):
    id: SourceId
    order_number: Optional[SourceId] = None
    created_at: Optional[str] = None
    currency: Optional[str] = None
    total_price: Optional[Decimal] = None
    subtotal_price: Optional[Decimal] = None
    total_tax: Optional[Decimal] = None
    total_shipping_price_set: Optional[ShopifyMoneySet] = None
    shipping_address: Optional[ShopifyAddress] = None
    billing_address: Optional[ShopifyAddress] = None
    customer: Optional[ShopifyCustomer] = None
    line_items: List[ShopifyLineItem] = Field(default_factory=list)
    refunds: List[ShopifyRefund] = Field(default_factory=list)


# =============================================================================
# AMAZON
# =============================================================================

class AmazonMoney(_Payload):
    currency_code: Optional[str] = Field(default=None, alias="CurrencyCode")
    amount: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("Amount", "CurrencyAmount", "amount"),
    )


class AmazonAddress(_Payload):
    city: Optional[str] = Field(default=None, alias="City")
    state_or_region: Optional[str] = Field(default=None, alias="StateOrRegion")
    postal_code: Optional[str] = Field(default=None, alias="PostalCode")
    country_code: Optional[str] = Field(default=None, alias="CountryCode")


class AmazonOrder(_Payload):
    amazon_order_id: str = Field(alias="AmazonOrderId")
    purchase_date: Optional[str] = Field(default=None, alias="PurchaseDate")
    order_status: Optional[str] = Field(default=None, alias="OrderStatus")
    order_total: Optional[AmazonMoney] = Field(default=None, alias="OrderTotal")
    shipping_address: Optional[AmazonAddress] = Field(default=None, alias="ShippingAddress")


class AmazonOrderItem(_Payload):
    order_item_id: SourceId = Field(alias="OrderItemId")
    seller_sku: Optional[str] = Field(default=None, alias="SellerSKU")
    asin: Optional[str] = Field(default=None, alias="ASIN")
    title: Optional[str] = Field(default=None, alias="Title")
    quantity_ordered: int = Field(default=0, alias="QuantityOrdered")
    item_price: Optional[AmazonMoney] = Field(default=None, alias="ItemPrice")
    shipping_price: Optional[AmazonMoney] = Field(default=None, alias="ShippingPrice")
    item_tax: Optional[AmazonMoney] = Field(default=None, alias="ItemTax")
    shipping_tax: Optional[AmazonMoney] = Field(default=None, alias="ShippingTax")
    promotion_discount: Optional[AmazonMoney] = Field(default=None, alias="PromotionDiscount")


class AmazonFeeComponent(_Payload):
    fee_type: str = Field(default="", alias="FeeType")
    fee_amount: Optional[AmazonMoney] = Field(default=None, alias="FeeAmount")


class AmazonShipmentItem(_Payload):
    seller_sku: Optional[str] = Field(default=None, alias="SellerSKU")
    order_item_id: Optional[SourceId] = Field(default=None, alias="OrderItemId")
    item_fee_list: List[AmazonFeeComponent] = Field(default_factory=list, alias="ItemFeeList")


class AmazonShipmentEvent(_Payload):
    amazon_order_id: Optional[str] = Field(default=None, alias="AmazonOrderId")
    posted_date: Optional[str] = Field(default=None, alias="PostedDate")
    shipment_item_list: List[AmazonShipmentItem] = Field(default_factory=list, alias="ShipmentItemList")


class AmazonReservedQuantity(_Payload):
    total_reserved_quantity: int = Field(default=0, alias="totalReservedQuantity")


class AmazonInventoryDetails(_Payload):
    fulfillable_quantity: int = Field(default=0, alias="fulfillableQuantity")
    inbound_working_quantity: int = Field(default=0, alias="inboundWorkingQuantity")
    inbound_shipped_quantity: int = Field(default=0, alias="inboundShippedQuantity")
    reserved_quantity: AmazonReservedQuantity = Field(default_factory=AmazonReservedQuantity, alias="reservedQuantity")


class AmazonInventorySummary(_Payload):
    asin: Optional[str] = None
    fn_sku: Optional[str] = Field(default=None, alias="fnSku")
    seller_sku: Optional[str] = Field(default=None, alias="sellerSku")
    condition: Optional[str] = None
    product_name: Optional[str] = Field(default=None, alias="productName")
    total_quantity: int = Field(default=0, alias="totalQuantity")
    last_updated_time: Optional[str] = Field(default=None, alias="lastUpdatedTime")
    inventory_details: AmazonInventoryDetails = Field(default_factory=AmazonInventoryDetails, alias="inventoryDetails")

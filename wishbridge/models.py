# wishbridge/models.py
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

DEFAULT_VARIANT = "default"

ItemKey = Tuple[str, str]


@dataclass(frozen=True)
class Image:
    url: str
    alt_text: Optional[str] = None


@dataclass(frozen=True)
class Price:
    """Decimal amount kept as the string the storefront sent."""
    amount: str
    currency_code: str


@dataclass(frozen=True)
class Item:
    """
    A saved product as stored locally and on the remote store.
    `added_at` is an ISO-8601 timestamp; it orders the collection and
    decides which side wins when two copies of the same entry meet.
    """
    product_id: str
    title: str
    added_at: str
    variant_id: Optional[str] = None
    handle: Optional[str] = None
    variant_title: Optional[str] = None
    image: Optional[Image] = None
    price: Optional[Price] = None

    @property
    def key(self) -> ItemKey:
        return make_key(self.product_id, self.variant_id)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "productId": self.product_id,
            "productTitle": self.title,
            "addedAt": self.added_at,
        }
        if self.variant_id is not None:
            out["variantId"] = self.variant_id
        if self.handle is not None:
            out["productHandle"] = self.handle
        if self.variant_title is not None:
            out["variantTitle"] = self.variant_title
        if self.image is not None:
            img: Dict[str, Any] = {"url": self.image.url}
            if self.image.alt_text is not None:
                img["altText"] = self.image.alt_text
            out["image"] = img
        if self.price is not None:
            out["price"] = {
                "amount": self.price.amount,
                "currencyCode": self.price.currency_code,
            }
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        """Build from a record that already passed is_valid_record()."""
        image = None
        raw_image = data.get("image")
        if isinstance(raw_image, dict) and isinstance(raw_image.get("url"), str):
            alt = raw_image.get("altText")
            image = Image(url=raw_image["url"], alt_text=alt if isinstance(alt, str) else None)

        price = None
        raw_price = data.get("price")
        if isinstance(raw_price, dict):
            amount = raw_price.get("amount")
            currency = raw_price.get("currencyCode")
            if isinstance(amount, (str, int, float)) and isinstance(currency, str):
                price = Price(amount=str(amount), currency_code=currency)

        return cls(
            product_id=data["productId"],
            title=data["productTitle"],
            added_at=data["addedAt"],
            variant_id=_opt_str(data.get("variantId")),
            handle=_opt_str(data.get("productHandle")),
            variant_title=_opt_str(data.get("variantTitle")),
            image=image,
            price=price,
        )


@dataclass(frozen=True)
class ProductInfo:
    """What a caller hands to add()/toggle(); the controller stamps added_at."""
    id: str
    title: str
    variant_id: Optional[str] = None
    handle: Optional[str] = None
    variant_title: Optional[str] = None
    image: Optional[Image] = None
    price: Optional[Price] = None

    @property
    def key(self) -> ItemKey:
        return make_key(self.id, self.variant_id)


def make_key(product_id: str, variant_id: Optional[str] = None) -> ItemKey:
    return (product_id, variant_id or DEFAULT_VARIANT)


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None

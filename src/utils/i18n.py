# bilingual messages raised by the checkout workflow and shown by the views
from typing import Dict, Literal

Lang = Literal["ar", "en"]

MESSAGES: Dict[str, Dict[str, str]] = {
    # validation
    "validation.full_name": {
        "ar": "يرجى إدخال الاسم الكامل.",
        "en": "Please enter your full name.",
    },
    "validation.phone": {
        "ar": "يرجى إدخال رقم الهاتف.",
        "en": "Please enter your phone number.",
    },
    "validation.region": {
        "ar": "يرجى اختيار الولاية.",
        "en": "Please select your state.",
    },
    "validation.address": {
        "ar": "يرجى إدخال العنوان التفصيلي.",
        "en": "Please enter your detailed address.",
    },
    "validation.terms": {
        "ar": "يجب الموافقة على شروط الاستخدام وسياسة الخصوصية.",
        "en": "You must agree to the terms of use and privacy policy.",
    },
    "validation.phone_unverified": {
        "ar": "يرجى تأكيد رقم الهاتف قبل إتمام الطلب.",
        "en": "Please verify your phone number before placing the order.",
    },
    "validation.cart": {
        "ar": "السلة فارغة.",
        "en": "Your cart is empty.",
    },
    # verification
    "verification.invalid-number": {
        "ar": "رقم الهاتف غير صالح.",
        "en": "The phone number is invalid.",
    },
    "verification.rate-limited": {
        "ar": "محاولات كثيرة. يرجى المحاولة لاحقاً.",
        "en": "Too many attempts. Please try again later.",
    },
    "verification.invalid-code": {
        "ar": "كود التحقق غير صحيح.",
        "en": "The verification code is incorrect.",
    },
    "verification.no-pending-code": {
        "ar": "يرجى طلب كود التحقق أولاً.",
        "en": "Please request a verification code first.",
    },
    "verification.generic": {
        "ar": "حدث خطأ أثناء التحقق من الهاتف.",
        "en": "Phone verification failed.",
    },
    "verification.code_sent": {
        "ar": "تم إرسال الكود. يرجى التحقق من هاتفك.",
        "en": "Code sent. Please check your phone.",
    },
    "verification.verified": {
        "ar": "تم تأكيد رقم الهاتف.",
        "en": "Phone number verified.",
    },
    # persistence / auth
    "persistence.failed": {
        "ar": "تعذر حفظ البيانات. تحقق من الصلاحيات أو الاتصال وحاول مجدداً.",
        "en": "Could not save. Check your permissions or connection and try again.",
    },
    "auth.unauthorized": {
        "ar": "ليس لديك صلاحية لهذا الإجراء.",
        "en": "You do not have permission for this action.",
    },
    "profile.phone_taken": {
        "ar": "رقم الهاتف مسجل لحساب آخر.",
        "en": "This phone number is already registered to another account.",
    },
    "order.invalid_transition": {
        "ar": "لا يمكن تغيير حالة الطلب بهذا الشكل.",
        "en": "The order cannot move to that status.",
    },
    "order.placed": {
        "ar": "تم استلام طلبك بنجاح",
        "en": "Your order has been received.",
    },
    # order status labels
    "status.pending": {"ar": "قيد الانتظار", "en": "Pending"},
    "status.processing": {"ar": "قيد التجهيز", "en": "Processing"},
    "status.shipped": {"ar": "تم الشحن", "en": "Shipped"},
    "status.delivered": {"ar": "تم التوصيل", "en": "Delivered"},
    "status.cancelled": {"ar": "ملغي", "en": "Cancelled"},
}


def t(key: str, lang: Lang = "ar") -> str:
    """Look up a message; unknown keys fall back to the key itself."""
    entry = MESSAGES.get(key)
    if entry is None:
        return key
    return entry.get(lang) or entry["en"]


def pick(ar_text: str, en_text: str, lang: Lang = "ar") -> str:
    """Choose between a localized pair, falling back to Arabic when English is blank."""
    if lang == "en" and en_text:
        return en_text
    return ar_text

from datetime import timezone

UTC = timezone.utc

DATE_FORMAT = "%m/%d/%Y"

NOT_SET = "Not set"
PROFILE_PLACEHOLDER = "Profile incomplete: complete your profile settings"
RECIPIENT_PLACEHOLDER = "Select a recipient"
NO_ITEMS_PLACEHOLDER = "No line items added yet"
PREVIEW_UNAVAILABLE = "Preview unavailable"
FOOTER_TEXT = "Thank you for your business!"

PDF_MEDIA_TYPE = "application/pdf"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "GBP": "£",
    "JPY": "¥",
    "BRL": "R$",
    "EUR": "€",
    "INR": "₹",
}


def format_date(value) -> str:
    if value is None:
        return NOT_SET
    return value.strftime(DATE_FORMAT)


def page_label(page_index: int, total_pages: int) -> str:
    return f"Page {page_index + 1} of {total_pages}"

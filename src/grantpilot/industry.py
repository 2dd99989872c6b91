"""Business-category classification and category-specific follow-on questions."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class BusinessCategory(str, Enum):
    RESTAURANT = "restaurant"
    RETAIL = "retail"
    BEAUTY = "beauty"
    SERVICE = "service"
    MANUFACTURING = "manufacturing"
    OTHER = "other"


# first match wins
_CATEGORY_MARKERS: tuple[tuple[BusinessCategory, tuple[str, ...]], ...] = (
    (BusinessCategory.BEAUTY, ("beauty", "salon", "barber", "美容・理容業")),
    (BusinessCategory.RESTAURANT, ("restaurant", "cafe", "café", "bar", "飲食店")),
    (BusinessCategory.RETAIL, ("retail", "shop", "store", "小売業")),
    (BusinessCategory.SERVICE, ("service", "サービス業")),
    (BusinessCategory.MANUFACTURING, ("construction", "manufactur", "建設業", "製造業")),
)


def classify_business_category(answer: Any) -> BusinessCategory:
    if not answer:
        return BusinessCategory.OTHER
    text = str(answer).lower()
    for category, markers in _CATEGORY_MARKERS:
        if any(m in text for m in markers):
            return category
    return BusinessCategory.OTHER


@dataclass(frozen=True, slots=True)
class TemplateQuestion:
    id: str
    question: str
    placeholder: str
    help_text: str
    place_lookup_hint: bool = False


BUSINESS_DETAIL_QUESTIONS: dict[BusinessCategory, TemplateQuestion] = {
    BusinessCategory.RESTAURANT: TemplateQuestion(
        id="restaurant-type",
        question="What exactly is your restaurant's style, and what are its signature strengths?",
        placeholder=(
            "e.g. A French bistro serving seasonal courses built on local organic vegetables. "
            "8 counter seats and 16 table seats; conversation with guests is part of the experience."
        ),
        help_text=(
            "Name the concrete format (French, Chinese, Japanese, Italian, cafe...) and what makes the "
            "place different. Points praised in online reviews are a good starting point."
        ),
        place_lookup_hint=True,
    ),
    BusinessCategory.RETAIL: TemplateQuestion(
        id="retail-type",
        question="What products do you carry, and what sets your shop apart?",
        placeholder=(
            "e.g. Women's fashion for customers in their 30s and 40s, natural casual wear from carefully "
            "selected domestic brands, with fitting rooms and personal styling advice."
        ),
        help_text="Describe the product range, target shoppers, how products are selected and the service style.",
        place_lookup_hint=True,
    ),
    BusinessCategory.BEAUTY: TemplateQuestion(
        id="salon-type",
        question="What kind of salon is it, and which menus and strengths are you known for?",
        placeholder=(
            "e.g. Hair salon focused on cut, colour and perm, with head spa treatments using organic "
            "products. Appointment only, three stylists."
        ),
        help_text="Name the salon format, signature menus, products or equipment you use and the atmosphere.",
        place_lookup_hint=True,
    ),
}


INDUSTRY_QUESTIONS: dict[BusinessCategory, tuple[TemplateQuestion, ...]] = {
    BusinessCategory.RESTAURANT: (
        TemplateQuestion(
            id="popular-items",
            question="What are your top three best-selling items and their prices?",
            placeholder="e.g. 1. Lunch set 1,200 yen, 2. Coffee 500 yen, 3. Cake set 800 yen",
            help_text="Knowing the best sellers lets the plan build on existing strengths.",
        ),
        TemplateQuestion(
            id="business-hours",
            question="What are your opening hours (lunch, dinner, closing days)?",
            placeholder="e.g. Lunch 11:00-15:00, dinner 17:00-22:00, closed Mondays",
            help_text="Per-slot strategies are more convincing when the hours are explicit.",
        ),
        TemplateQuestion(
            id="sales-ratio",
            question="How do sales split between lunch and dinner?",
            placeholder="e.g. Lunch 60%, dinner 40%",
            help_text="The split shows which time slot should be strengthened.",
        ),
        TemplateQuestion(
            id="customer-difference",
            question="How do lunch and dinner customers differ?",
            placeholder="e.g. Office workers and parents at lunch, couples and business dinners at night",
            help_text="Distinct target customers per slot make the initiatives more specific.",
        ),
        TemplateQuestion(
            id="seasonal-variation",
            question="Do sales vary by season?",
            placeholder="e.g. Cold pasta lifts summer sales by 20%, hot pot adds 10% in winter",
            help_text="Seasonality supports a year-round sales plan.",
        ),
    ),
    BusinessCategory.RETAIL: (
        TemplateQuestion(
            id="best-sellers",
            question="What are your top three best-selling products and their prices?",
            placeholder="e.g. 1. T-shirt 3,000 yen, 2. Jeans 8,000 yen, 3. Accessories 2,000 yen",
            help_text="Best sellers point to where the assortment should grow.",
        ),
        TemplateQuestion(
            id="customer-flow",
            question="How does foot traffic differ between weekdays and weekends?",
            placeholder="e.g. 20 visitors a day on weekdays, 80 on weekends",
            help_text="Day-of-week traffic shows which days need support.",
        ),
        TemplateQuestion(
            id="purchase-rate",
            question="What share of visitors make a purchase?",
            placeholder="e.g. About 30% buy, average spend 5,000 yen",
            help_text="Conversion rate makes the effect of service or promotion changes measurable.",
        ),
    ),
    BusinessCategory.BEAUTY: (
        TemplateQuestion(
            id="popular-menus",
            question="What are your three most popular menus and their prices?",
            placeholder="e.g. 1. Cut and colour 8,000 yen, 2. Cut 4,000 yen, 3. Perm 6,000 yen",
            help_text="Popular menus show which strengths to build customer acquisition on.",
        ),
        TemplateQuestion(
            id="repeat-rate",
            question="What is your repeat rate and typical visit interval?",
            placeholder="e.g. 70% repeat, one visit every two months on average",
            help_text="A high repeat rate is evidence of customer satisfaction.",
        ),
        TemplateQuestion(
            id="booking-method",
            question="How do customers book (phone, web, walk-in)?",
            placeholder="e.g. Phone 50%, web 30%, walk-in 20%",
            help_text="The booking mix supports the case for an online booking system.",
        ),
    ),
}


def get_business_detail_question(category_answer: Any) -> TemplateQuestion | None:
    return BUSINESS_DETAIL_QUESTIONS.get(classify_business_category(category_answer))


def get_industry_questions(category_answer: Any) -> tuple[TemplateQuestion, ...]:
    return INDUSTRY_QUESTIONS.get(classify_business_category(category_answer), ())

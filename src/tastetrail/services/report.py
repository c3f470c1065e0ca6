from __future__ import annotations

from typing import List, Optional, Sequence

from tastetrail.models import Booking, Restaurant, TasteProfile

WELLNESS_LOADING = [
    "Calculating nutritional DNA...",
    "Scouting keto-friendly spots...",
    "Chef Gully is auditing menus...",
    "Matching your health goals...",
]

FLAVOR_LOADING = [
    "Scouting secret spices...",
    "Hunting for the perfect crunch...",
    "Gully is checking the vibe...",
    "Matching your flavor profile...",
    "Finding top-rated regional gems...",
]

PLATFORM_LABELS = {
    "swiggy_url": "Swiggy",
    "zomato_url": "Zomato",
    "order_url": "Order online",
    "eatsure_url": "EatSure",
    "magicpin_url": "magicpin",
}


def loading_message(healthy: bool, tick: int) -> str:
    """Message shown on the given timer tick while a search is pending."""
    messages = WELLNESS_LOADING if healthy else FLAVOR_LOADING
    return messages[tick % len(messages)]


def success_announcement(profile: TasteProfile, count: int) -> str:
    if profile.is_healthy_scout:
        return f"Success! I found {count} wellness-focused spots for you."
    return f"Ooh ooh! I found {count} delicious spots matching your vibe!"


def results_heading(profile: Optional[TasteProfile], count: int) -> tuple[str, str]:
    if profile is not None and profile.is_healthy_scout:
        return "Top Wellness Spots", f"{count} Nutritional Matches"
    return "Top Flavor Matches", f"{count} Soul Food Found"


def build_report(
    profile: Optional[TasteProfile],
    restaurants: Sequence[Restaurant],
    bookings: Sequence[Booking],
    *,
    delivery_only: bool = False,
    city: Optional[str] = None,
) -> str:
    title, subtitle = results_heading(profile, len(restaurants))
    lines: List[str] = [
        f"## {title}",
        f"- {subtitle}",
        f"- Near: {city or 'Unknown'}",
        f"- Online delivery filter: {'on' if delivery_only else 'off'}",
    ]
    if profile is not None and profile.is_healthy_scout:
        lines.append("- Health mode active")
    if profile is not None and profile.custom_notes:
        lines.append(f"- Notes: {profile.custom_notes}")
    lines.append("")

    if not restaurants:
        lines.append("_No spots match the filter._")
    for idx, r in enumerate(restaurants, start=1):
        links = ", ".join(
            f"[{PLATFORM_LABELS.get(name, name)}]({url})" for name, url in r.delivery_links.items()
        ) or "Dine-in only"
        lines += [
            f"#### {idx}. {r.name}",
            f"- Cuisine: {r.cuisine or 'Not specified'}",
            f"- Address: {r.address or 'Not provided'}",
            f"- Rating: {r.rating:.1f}/5" if r.rating is not None else "- Rating: not rated",
            f"- Why it matches: {r.match_reason or 'not provided'}",
            f"- Delivery: {links}",
        ]
        if profile is not None and profile.is_healthy_scout and r.nutrition:
            lines.append(f"- Nutrition: {r.nutrition}")
        lines.append("")

    lines.append("### Reservations")
    if not bookings:
        lines.append("_No plans yet._")
    for b in bookings:
        lines.append(f"- {b.restaurant_name}: {b.date} {b.time} for {b.guests} (confirmed)")
    return "\n".join(lines)

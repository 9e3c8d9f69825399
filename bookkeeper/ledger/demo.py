"""
Demo accounts and data.

Two showcase businesses, created through the normal registration path
(no credential bypass) and filled with deterministic, realistic
transactions in KGS:
- TechFlow Solutions: a Bishkek software company (English categories)
- Aigul's shop: a Dordoi Bazaar clothing stall (Kyrgyz categories)

Seeding is idempotent: an account that already exists is left alone.
"""

import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

import structlog
from dateutil.relativedelta import relativedelta

from bookkeeper.audit import AuditLogger
from bookkeeper.auth.guard import SessionGuard
from bookkeeper.auth.results import AuthStatus
from bookkeeper.ledger.repository import TransactionLedger
from bookkeeper.models.transaction import PaymentMethod, TransactionDraft, TransactionType
from bookkeeper.models.user import User, utc_now
from bookkeeper.services.storage import KeyValueStore


logger = structlog.get_logger(__name__)

PAYMENT_METHODS = [m.value for m in PaymentMethod]

# category -> (min amount, max amount, descriptions)
TECH_INCOME = {
    "Software Development": (5000, 20000, [
        "Web development project for Bishkek Bank",
        "Mobile banking app for Optima Bank",
        "E-commerce platform for Dordoi Plaza",
        "CRM system for Kyrgyz Telecom",
        "API integration for Mbank",
    ]),
    "Consulting": (3000, 11000, [
        "IT strategy consulting for Kumtor Gold Company",
        "Digital transformation for Kyrgyz Railways",
        "Cybersecurity assessment for local bank",
        "Software architecture consulting",
    ]),
    "Services": (2000, 8000, [
        "Monthly maintenance for banking system",
        "24/7 technical support services",
        "Server monitoring and maintenance",
        "Cloud hosting services",
    ]),
    "Sales": (2500, 9500, [
        "Software license sales to enterprise",
        "Hardware equipment sales and setup",
        "Backup solution deployment",
    ]),
}

TECH_EXPENSE = {
    "Salaries": (2500, 6500, [
        "Senior Full-Stack Developer salary",
        "Junior Frontend Developer payment",
        "QA Engineer salary",
    ]),
    "Office Rent": (2000, 3500, [
        "Monthly office rent - Bishkek city center",
        "Coworking space membership at Ala-Too",
    ]),
    "Equipment": (1500, 9500, [
        "MacBook Pro for senior developer",
        "Monitors for development team",
        "Network equipment and router upgrade",
    ]),
    "Marketing": (500, 3000, [
        "Google Ads campaign for lead generation",
        "Sponsorship of local tech meetup",
    ]),
    "Utilities": (300, 1100, [
        "High-speed internet from Kyrnet",
        "Electricity bill for office space",
    ]),
    "Transport": (200, 1400, [
        "Client meeting transportation in Bishkek",
        "Fuel costs for company vehicle",
    ]),
    "Materials": (200, 1200, [
        "Office supplies and stationery",
        "Technical books and learning resources",
    ]),
}

BAZAAR_INCOME = {
    "Кийим сатуу": (500, 3500, [
        "Аялдар үчүн көйнөк сатуу",
        "Балдар кийими сатуу",
        "Эркектер күртка сатуу",
        "Кыштык кийим сатуу",
    ]),
    "Буюм сатуу": (300, 2300, [
        "Сумка жана рюкзак сатуу",
        "Кол саат сатуу",
        "Шарф сатуу",
    ]),
    "Бут кийим сатуу": (800, 4800, [
        "Аялдар туфли сатуу",
        "Балдар бут кийим сатуу",
        "Кроссовка сатуу",
    ]),
}

BAZAAR_EXPENSE = {
    "Товар сатып алуу": (5000, 20000, [
        "Кытайдан кийим алуу",
        "Түркиядан товар алуу",
        "Жаңы коллекция алуу",
    ]),
    "Орун ижарасы": (8000, 13000, [
        "Дордой базарындагы орун ижарасы",
        "Контейнер ижарасы",
    ]),
    "Транспорт": (1000, 4000, [
        "Товар ташуу үчүн транспорт",
        "Жүк ташуу кызматы",
    ]),
    "Коммуналдык кызматтар": (500, 2500, [
        "Электр энергия төлөмү",
        "Интернет төлөмү",
    ]),
    "Башка": (500, 3000, [
        "Кесиптик салык төлөмү",
        "Банк кызматы төлөмү",
    ]),
}

DEMO_ACCOUNTS = (
    {
        "business_name": "TechFlow Solutions",
        "email": "demo@bazar.ai",
        "password": "Demo123!",
        "phone": "+996 555 123 456",
        "language": "en",
        "months": 3,
        "per_month": (8, 15),
        "income_share": 0.7,
        "tax_share": 0.6,
        "hours": (8, 18),
        "income": TECH_INCOME,
        "expense": TECH_EXPENSE,
    },
    {
        "business_name": "Айгүл Дүкөнү",
        "email": "dordoi@bazar.ai",
        "password": "Dordoi123!",
        "phone": "+996 700 555 123",
        "language": "ky",
        "months": 4,
        "per_month": (40, 60),
        "income_share": 0.6,
        "tax_share": 0.3,
        "hours": (8, 20),
        "income": BAZAAR_INCOME,
        "expense": BAZAAR_EXPENSE,
    },
)


def generate_demo_transactions(
    profile: dict,
    now: datetime,
    rng: random.Random,
) -> list[TransactionDraft]:
    """
    Build drafts spread over the profile's recent months, oldest first.

    Timestamps never lie in the future relative to now.
    """
    drafts = []
    for months_back in range(profile["months"] - 1, -1, -1):
        month_start = (now - relativedelta(months=months_back)).replace(
            day=1, hour=0, minute=0, second=0, microsecond=0
        )
        last_day = 28 if months_back else min(28, now.day)

        low, high = profile["per_month"]
        for _ in range(rng.randint(low, high)):
            is_income = rng.random() < profile["income_share"]
            pool = profile["income"] if is_income else profile["expense"]
            category = rng.choice(sorted(pool))
            min_amount, max_amount, descriptions = pool[category]

            first_hour, last_hour = profile["hours"]
            timestamp = month_start + timedelta(
                days=rng.randint(1, last_day) - 1,
                hours=rng.randint(first_hour, last_hour - 1),
                minutes=rng.randint(0, 59),
            )
            if timestamp > now:
                timestamp = now - timedelta(minutes=rng.randint(1, 600))

            drafts.append(TransactionDraft(
                amount=Decimal(rng.randint(min_amount, max_amount)),
                type=TransactionType.INCOME if is_income else TransactionType.EXPENSE,
                category=category,
                payment_method=rng.choice(PAYMENT_METHODS),
                description=rng.choice(descriptions),
                timestamp=timestamp,
                tax_relevant=rng.random() < profile["tax_share"],
            ))

    drafts.sort(key=lambda d: d.timestamp)
    return drafts


def seed_demo_accounts(
    guard: SessionGuard,
    store: KeyValueStore,
    clock: Callable[[], datetime] = utc_now,
    audit: Optional[AuditLogger] = None,
    seed: int = 2024,
) -> list[User]:
    """
    Register the demo accounts and fill their ledgers.

    Returns:
        Users created by this call (empty when they already existed)
    """
    rng = random.Random(seed)
    created = []

    for profile in DEMO_ACCOUNTS:
        result = guard.register(
            profile["business_name"],
            profile["email"],
            profile["password"],
            profile["phone"],
            profile["language"],
            start_session=False,
        )
        if result.status != AuthStatus.REGISTERED:
            logger.info("demo_account_skipped", email=profile["email"], reason=result.error_code)
            continue

        ledger = TransactionLedger(store, result.user.id, clock=clock, audit=audit)
        drafts = generate_demo_transactions(profile, clock(), rng)
        # add() prepends, so adding oldest first leaves the ledger newest first
        for draft in drafts:
            ledger.add(draft)

        logger.info("demo_account_seeded", email=profile["email"], transactions=len(drafts))
        created.append(result.user)

    return created

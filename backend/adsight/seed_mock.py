"""Seed script to populate the insight tables with realistic mock data.

Features:
- Realistic Hierarchy: 7 campaigns > 14 ad sets > 22 ads for one client.
- Consistent Levels: ad rows are generated first; ad set and campaign rows
  are their daily roll-ups, so every drill level sums to the same spend.
- Deterministic: a fixed random seed gives identical data on every run.
- Status-aware: paused entities spend a fraction of active ones.

Usage:
    cd backend
    python -m adsight.seed_mock --org org_demo --client client_demo --days 30
"""

import argparse
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Tuple

from adsight import models
from adsight.metrics import formulas


@dataclass(frozen=True)
class MockAd:
    id: str
    name: str
    status: str = "ACTIVE"


@dataclass(frozen=True)
class MockAdset:
    id: str
    name: str
    status: str
    ads: Tuple[MockAd, ...]


@dataclass(frozen=True)
class MockCampaign:
    id: str
    name: str
    objective: str
    status: str
    adsets: Tuple[MockAdset, ...]


CAMPAIGNS: Tuple[MockCampaign, ...] = (
    MockCampaign("camp_001", "Lead Capture - Downtown Apartments", "LEAD_GENERATION", "ACTIVE", (
        MockAdset("as_001a", "Downtown 25-45", "ACTIVE", (
            MockAd("ad_001a1", "Carousel Luxury Apartments"),
            MockAd("ad_001a2", "Video Virtual Tour 360"),
            MockAd("ad_001a3", "Image Premium Floor Plan", "PAUSED"),
        )),
        MockAdset("as_001b", "Suburbs 30-55", "ACTIVE", (
            MockAd("ad_001b1", "Single Image - Family House"),
            MockAd("ad_001b2", "Video Customer Testimonial"),
        )),
        MockAdset("as_001c", "Metro Area 28-50", "PAUSED", (
            MockAd("ad_001c1", "Night Facade Photo", "PAUSED"),
        )),
    )),
    MockCampaign("camp_002", "Remarketing - Site Visitors", "CONVERSIONS", "ACTIVE", (
        MockAdset("as_002a", "Visitors 7 days", "ACTIVE", (
            MockAd("ad_002a1", "DPA - Viewed Products"),
            MockAd("ad_002a2", "Coupon 15% OFF Return"),
        )),
        MockAdset("as_002b", "Abandoned Cart", "ACTIVE", (
            MockAd("ad_002b1", "Urgency - Last Units"),
        )),
    )),
    MockCampaign("camp_003", "Branding - Summer Launch", "REACH", "ACTIVE", (
        MockAdset("as_003a", "Women 18-35 Nationwide", "ACTIVE", (
            MockAd("ad_003a1", "Lifestyle Video Summer v1"),
            MockAd("ad_003a2", "Lifestyle Video Summer v2"),
        )),
        MockAdset("as_003b", "Men 25-45 Southeast", "ACTIVE", (
            MockAd("ad_003b1", "Hero Product Photo"),
        )),
    )),
    MockCampaign("camp_004", "Traffic - Blog Posts", "LINK_CLICKS", "PAUSED", (
        MockAdset("as_004a", "Interest: Digital Marketing", "PAUSED", (
            MockAd("ad_004a1", "Blog Post: 5 Tips", "PAUSED"),
            MockAd("ad_004a2", "Blog Post: Trends", "PAUSED"),
        )),
    )),
    MockCampaign("camp_005", "Sales - Black Friday", "CONVERSIONS", "ACTIVE", (
        MockAdset("as_005a", "Top 10% Buyers", "ACTIVE", (
            MockAd("ad_005a1", "Black Friday - 50% OFF"),
            MockAd("ad_005a2", "Countdown Timer BF"),
        )),
        MockAdset("as_005b", "Social Engagers", "ACTIVE", (
            MockAd("ad_005b1", "Carousel BF Products"),
        )),
        MockAdset("as_005c", "Newsletter Openers", "ACTIVE", (
            MockAd("ad_005c1", "Exclusive Offer"),
        )),
    )),
    MockCampaign("camp_006", "Lookalike - Buyers", "LEAD_GENERATION", "ACTIVE", (
        MockAdset("as_006a", "Lookalike 1% Buyers", "ACTIVE", (
            MockAd("ad_006a1", "Lifestyle Image"),
        )),
        MockAdset("as_006b", "Lookalike 3% Leads", "ACTIVE", (
            MockAd("ad_006b1", "Short Testimonial Video"),
        )),
    )),
    MockCampaign("camp_007", "Stories - Flash Promo", "REACH", "PAUSED", (
        MockAdset("as_007a", "Stories Feed 18-30", "PAUSED", (
            MockAd("ad_007a1", "Story Poll", "PAUSED"),
            MockAd("ad_007a2", "Story Link Sticker", "PAUSED"),
        )),
    )),
)

ROLLUP_FIELDS = ("impressions", "reach", "clicks", "link_clicks", "spend", "leads", "conversions", "revenue")


@dataclass
class MockDataset:
    campaign_rows: List[Dict] = field(default_factory=list)
    adset_rows: List[Dict] = field(default_factory=list)
    ad_rows: List[Dict] = field(default_factory=list)


def generate_ad_metrics(rng: random.Random, active: bool) -> Dict:
    """Generate one ad-day of metrics. Paused ads get ~5% of the volume."""
    scale = 1.0 if active else 0.05
    impressions = int(rng.randint(200, 4000) * scale)
    reach = int(impressions * rng.uniform(0.65, 0.9))
    clicks = rng.randint(0, max(0, int(impressions * 0.035)))
    link_clicks = int(clicks * rng.uniform(0.5, 0.75))
    spend = round(rng.uniform(8, 60) * scale, 2)
    leads = rng.randint(0, max(0, int(clicks * 0.1)))
    conversions = rng.randint(0, max(0, int(leads * 0.25)))
    revenue = round(conversions * rng.uniform(100, 500), 2)
    return {
        "impressions": impressions,
        "reach": reach,
        "clicks": clicks,
        "link_clicks": link_clicks,
        "spend": spend,
        "leads": leads,
        "conversions": conversions,
        "revenue": revenue,
        "frequency": round(formulas.frequency(impressions, reach), 4),
    }


def _rollup(rows: List[Dict], identity: Dict) -> Dict:
    row = dict(identity)
    for name in ROLLUP_FIELDS:
        row[name] = sum(r[name] for r in rows)
    row["spend"] = round(row["spend"], 2)
    row["revenue"] = round(row["revenue"], 2)
    row["frequency"] = round(formulas.frequency(row["impressions"], row["reach"]), 4)
    return row


def generate_dataset(
    organization_id: str,
    client_id: str,
    start: date,
    end: date,
    seed: int = 42,
) -> MockDataset:
    """Build rows for all three levels over [start, end] without touching the DB."""
    rng = random.Random(seed)
    dataset = MockDataset()

    day = start
    while day <= end:
        for campaign in CAMPAIGNS:
            campaign_ads: List[Dict] = []
            for adset in campaign.adsets:
                adset_ads: List[Dict] = []
                for ad in adset.ads:
                    active = ad.status == "ACTIVE" and adset.status == "ACTIVE" and campaign.status == "ACTIVE"
                    row = {
                        "organization_id": organization_id,
                        "client_id": client_id,
                        "date": day,
                        "campaign_id": campaign.id,
                        "campaign_name": campaign.name,
                        "adset_id": adset.id,
                        "adset_name": adset.name,
                        "ad_id": ad.id,
                        "ad_name": ad.name,
                        "status": ad.status,
                        "objective": campaign.objective,
                        **generate_ad_metrics(rng, active),
                    }
                    adset_ads.append(row)

                dataset.ad_rows.extend(adset_ads)
                dataset.adset_rows.append(_rollup(adset_ads, {
                    "organization_id": organization_id,
                    "client_id": client_id,
                    "date": day,
                    "campaign_id": campaign.id,
                    "campaign_name": campaign.name,
                    "adset_id": adset.id,
                    "adset_name": adset.name,
                    "status": adset.status,
                    "objective": campaign.objective,
                }))
                campaign_ads.extend(adset_ads)

            dataset.campaign_rows.append(_rollup(campaign_ads, {
                "organization_id": organization_id,
                "client_id": client_id,
                "date": day,
                "campaign_id": campaign.id,
                "campaign_name": campaign.name,
                "status": campaign.status,
                "objective": campaign.objective,
            }))
        day += timedelta(days=1)

    return dataset


def seed(organization_id: str, client_id: str, days: int = 30, seed_value: int = 42) -> MockDataset:
    """Replace the client's insight rows with a fresh mock dataset."""
    from adsight.database import get_sync_session

    end = date.today()
    start = end - timedelta(days=days - 1)
    dataset = generate_dataset(organization_id, client_id, start, end, seed=seed_value)

    with get_sync_session() as db:
        print("🧹 Clearing existing insight rows...")
        for model in (models.AdInsight, models.AdsetInsight, models.CampaignInsight):
            (
                db.query(model)
                .filter(model.organization_id == organization_id, model.client_id == client_id)
                .delete(synchronize_session=False)
            )
        db.commit()

        print("📊 Writing insight rows...")
        db.add_all(models.CampaignInsight(**row) for row in dataset.campaign_rows)
        db.add_all(models.AdsetInsight(**row) for row in dataset.adset_rows)
        db.add_all(models.AdInsight(**row) for row in dataset.ad_rows)
        db.commit()

    print("\n" + "=" * 70)
    print("🎉 SEED COMPLETE!")
    print("=" * 70)
    print(f"   Organization: {organization_id} / Client: {client_id}")
    print(f"   Range: {start} → {end}")
    print(f"   Campaign rows: {len(dataset.campaign_rows):,}")
    print(f"   Ad set rows:   {len(dataset.adset_rows):,}")
    print(f"   Ad rows:       {len(dataset.ad_rows):,}")
    print("=" * 70 + "\n")
    return dataset


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed mock campaign insights")
    parser.add_argument("--org", default="org_demo", help="Organization id")
    parser.add_argument("--client", default="client_demo", help="Client id")
    parser.add_argument("--days", type=int, default=30, help="Days of history ending today")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    seed(args.org, args.client, days=args.days, seed_value=args.seed)


if __name__ == "__main__":
    main()

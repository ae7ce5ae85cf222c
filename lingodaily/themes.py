"""Deterministic daily theme selection.

The same calendar date always yields the same themes, across restarts and
across every language generated that day. The hash is kept stable: changing it
would reshuffle the themes of every future date.
"""

import math
from datetime import date

from lingodaily.models import EARLY_LEVELS, INTERMEDIATE_LEVELS

EARLY_LEVEL_THEMES = [
    "planning a birthday party",
    "ordering food at a restaurant",
    "asking for directions in a new city",
    "discussing weekend plans",
    "shopping for clothes",
    "making a doctor appointment",
    "talking about the weather",
    "inviting someone to a movie",
    "discussing hobbies and interests",
    "arranging to meet a friend",
    "booking a hotel room",
    "asking about public transportation",
    "sharing vacation photos",
    "discussing favorite foods",
    "planning a picnic",
    "talking about pets",
    "asking for recipe recommendations",
    "discussing a recent concert or event",
    "making gym or exercise plans",
    "talking about family members",
    "discussing daily routines",
    "asking for book recommendations",
    "planning a study session",
    "talking about sports or games",
    "discussing morning coffee habits",
    "arranging a group dinner",
    "talking about a new job",
    "discussing apartment hunting",
    "planning a beach day",
    "talking about learning a new skill",
    "discussing favorite TV shows",
    "arranging a carpool",
    "talking about grocery shopping",
    "planning a hiking trip",
    "discussing phone or tech problems",
    "talking about the gym or fitness",
    "arranging a video call",
    "discussing a wedding or celebration",
    "planning a surprise party",
    "talking about buying furniture",
    "discussing home repairs",
    "arranging pet care while traveling",
    "talking about cooking dinner",
    "planning a road trip",
    "discussing concert tickets",
    "talking about starting a garden",
    "arranging a moving day",
    "discussing seasonal activities",
    "planning a museum visit",
    "talking about neighborhood news",
    "discussing car troubles",
    "arranging childcare",
    "talking about a new restaurant",
    "planning holiday decorations",
    "discussing gift ideas",
    "talking about recycling or sustainability",
    "arranging a study abroad program",
    "discussing favorite music",
    "planning a volunteer activity",
    "talking about a farmers market",
    "discussing online shopping",
    "arranging a photography session",
    "talking about board game night",
    "planning a potluck dinner",
    "discussing bike routes",
    "talking about a yoga or dance class",
    "arranging a book club meeting",
    "discussing a new coffee shop",
    "planning a karaoke night",
    "talking about home organization",
    "discussing local festivals",
    "arranging a dog park meetup",
    "talking about starting a business",
    "planning a craft project",
    "discussing apartment decorating",
    "talking about meal prep",
    "arranging a language exchange",
    "discussing climate and seasons",
    "planning a camping adventure",
    "talking about visiting relatives",
    "discussing New Year resolutions",
    "arranging a painting class",
    "talking about smart home devices",
    "planning a wine tasting",
    "discussing thrift store finds",
    "talking about running a marathon",
    "arranging a garage sale",
    "discussing a documentary",
    "planning a costume party",
    "talking about adopting a pet",
    "discussing budgeting and saving",
    "arranging a trivia night",
    "talking about trying new cuisines",
    "planning a spa day",
    "discussing home security",
    "talking about getting a haircut",
    "arranging a gaming tournament",
    "discussing subscription services",
    "planning a charity event",
]

INTERMEDIATE_LEVEL_THEMES = [
    "debating remote work versus office work",
    "discussing career change considerations",
    "explaining work-life balance strategies",
    "negotiating a raise or promotion",
    "handling conflict with a coworker",
    "comparing freelancing to traditional employment",
    "planning professional development goals",
    "discussing effective team collaboration",
    "giving constructive feedback to a colleague",
    "exploring networking strategies",
    "debating social media impact on relationships",
    "discussing online privacy concerns",
    "sharing digital detox experiences",
    "exploring AI and automation in daily life",
    "comparing online versus in-store shopping",
    "discussing streaming services and content",
    "debating digital learning versus traditional education",
    "explaining cryptocurrency and digital payments",
    "discussing smart home technology pros and cons",
    "exploring screen time and health effects",
    "discussing different music genres and their history",
    "debating the benefits of routine versus spontaneity",
    "sharing favorite childhood memories",
    "comparing handwriting versus typing",
    "discussing city parks and recreational spaces",
    "exploring different photography styles",
    "discussing home gardening techniques",
    "debating morning versus evening routines",
    "comparing different types of exercise",
    "discussing memory improvement techniques",
    "exploring mental health awareness",
    "debating alternative medicine versus traditional",
    "discussing nutrition myths and facts",
    "comparing fitness trends and effectiveness",
    "explaining sleep hygiene and productivity",
    "sharing stress management techniques",
    "discussing preventive healthcare approaches",
    "exploring work-related health issues",
    "debating mindfulness and meditation benefits",
    "comparing healthcare experiences",
    "discussing generational differences in technology use",
    "exploring family traditions and customs",
    "debating urban versus rural living",
    "discussing the value of different hobbies",
    "exploring effective communication skills",
    "discussing time management for busy schedules",
    "debating the importance of work-life boundaries",
    "exploring strategies for maintaining motivation",
    "discussing volunteer work and community service",
    "sharing community involvement experiences",
    "comparing book versus movie adaptations",
    "discussing media consumption habits",
    "debating the appeal of nostalgia",
    "exploring reality TV influence on society",
    "discussing museum and art accessibility",
    "exploring language preservation efforts",
    "debating music streaming versus physical media",
    "discussing celebrity culture impact",
    "exploring different film genres",
    "discussing podcast popularity reasons",
    "sharing adult learning experiences",
    "discussing overcoming perfectionism",
    "comparing time management philosophies",
    "exploring habit-building strategies",
    "discussing public speaking anxiety",
    "debating financial literacy importance",
    "sharing creative hobbies and their benefits",
    "discussing mentorship relationships",
    "exploring the self-improvement industry",
    "comparing goal-setting strategies",
    "discussing maintaining long-distance friendships",
    "exploring family expectations versus personal choices",
    "debating dating in the digital age",
    "discussing multi-generational households",
    "exploring the choice to have children",
    "debating work friendships boundaries",
    "comparing cultural differences in parenting",
    "discussing solo living versus roommates",
    "exploring community building in neighborhoods",
    "discussing neighborly disputes resolution",
    "debating minimalism versus collecting",
    "exploring subscription service value",
    "discussing smart shopping strategies",
    "comparing gig economy pros and cons",
    "discussing housing market challenges",
    "debating saving versus investing strategies",
    "exploring secondhand shopping benefits",
    "discussing brand loyalty in modern times",
    "exploring consumer rights awareness",
    "debating sharing economy services",
    "discussing online degrees credibility",
    "exploring lifelong learning importance",
    "debating student loan management",
    "discussing gap year benefits and drawbacks",
    "exploring different education paths",
    "comparing vocational training to university",
    "discussing different learning styles",
    "sharing study abroad experiences",
    "debating technology use in classrooms",
    "exploring critical thinking skills development",
    "discussing respectful tourism practices",
    "exploring cultural sensitivity while traveling",
    "debating digital nomad lifestyle",
    "discussing language learning while traveling",
    "exploring travel budgeting strategies",
    "comparing travel planning approaches",
    "debating adventure travel versus relaxation",
    "sharing solo travel experiences",
    "discussing cultural shock adjustment",
    "exploring wildlife watching and nature tourism",
    "debating plant-based diet considerations",
    "discussing food allergies and dining out",
    "exploring meal planning strategies",
    "discussing restaurant tipping culture",
    "debating cooking skills importance",
    "exploring ethnic cuisine authenticity",
    "discussing seasonal cooking and local ingredients",
    "debating intermittent fasting trends",
    "exploring farmers markets and local food",
    "comparing cooking from scratch to convenience foods",
    "discussing side hustles and passive income",
    "exploring imposter syndrome in professional life",
    "debating college major selection factors",
    "discussing burnout prevention strategies",
    "exploring personal finance apps and budgeting",
    "debating rent versus buy decisions",
    "discussing creative problem-solving approaches",
    "exploring the four-day work week concept",
]

# Offset added to the date seed for each theme group
GROUP_OFFSETS = {
    "early": 0,
    "intermediate": 1,
}

GROUP_THEMES = {
    "early": EARLY_LEVEL_THEMES,
    "intermediate": INTERMEDIATE_LEVEL_THEMES,
}


def seeded_random(seed: int) -> float:
    """Map an integer seed to a reproducible value in [0, 1)."""
    x = math.sin(seed) * 10000
    return x - math.floor(x)


def date_seed(day: date) -> int:
    """Seed for a date in YYYYMMDD form, e.g. 20251104."""
    return day.year * 10000 + day.month * 100 + day.day


def _pick(themes: list[str], seed: int) -> str:
    index = math.floor(seeded_random(seed) * len(themes))
    # Rounding can push the product onto len(themes)
    if 0 <= index < len(themes):
        return themes[index]
    return ""


def select_themes(day: date) -> dict[str, str]:
    """Select the early and intermediate themes for a date."""
    seed = date_seed(day)
    return {
        group: _pick(GROUP_THEMES[group], seed + offset)
        for group, offset in GROUP_OFFSETS.items()
    }


def theme_group(level: str) -> str:
    level = level.upper()
    if level in EARLY_LEVELS:
        return "early"
    if level in INTERMEDIATE_LEVELS:
        return "intermediate"
    raise ValueError(f"Unsupported level: {level}")


def theme_for_level(themes: dict[str, str], level: str) -> str:
    return themes.get(theme_group(level), "")

# bli_settings.py
# Better Life Index dashboard settings: categories, labels, regions and defaults.
# Edit this file to change how countries are scored and shown.

import os
from pathlib import Path

APP_TITLE = "OECD Better Life Index"

DATA_PATH = Path(os.getenv("BLI_DATA_FILE", "data/2024BetterLife.csv"))
LOG_LEVEL = os.getenv("BLI_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("BLI_LOG_FILE")  # unset -> console only

# Non-indicator columns of the wide CSV
COUNTRY_COLUMN = "Country"
FLAG_COLUMN = "Flag"
POPULATION_COLUMN = "Population"
TEXT_COLUMNS = (COUNTRY_COLUMN, FLAG_COLUMN)

# ----- Categories -----
# Each category averages its member indicators per country, then the mean is
# rescaled onto SCORE_SCALE using the min/max across countries.
CATEGORIES = {
    "Housing": [
        "Dwellings without basic facilities",
        "Housing expenditure",
        "Rooms per person",
    ],
    "Income": [
        "GDP per capita (USD)",
        "Household net adjusted disposable income",
        "Household net wealth",
        "Personal earnings",
    ],
    "Jobs": [
        "Labour market insecurity",
        "Employment rate",
        "Long-term unemployment rate",
    ],
    "Community": ["Quality of support network"],
    "Education": ["Educational attainment", "Student skills", "Years in education"],
    "Environment": ["Air pollution", "Water quality"],
    "Civic Engagement": [
        "Stakeholder engagement for developing regulations",
        "Voter turnout",
    ],
    "Health": ["Life expectancy", "Self-reported health"],
    "Life Satisfaction": ["Life satisfaction"],
    "Safety": ["Feeling safe walking alone at night", "Homicide rate"],
    "Work-Life Balance": [
        "Employees working very long hours",
        "Time devoted to leisure and personal care",
    ],
}

# Used by the ranking widget while every slider sits at zero
DEFAULT_CATEGORY = "Life Satisfaction"
SCORE_SCALE = (1, 10)
WEIGHT_MAX = 10

# Rows whose name contains one of these are aggregates, not countries
AGGREGATE_MARKERS = ("oecd", "total", "european union")

# ----- Regions -----
REGIONS = {
    "Europe": [
        "Austria", "Belgium", "Czechia", "Denmark", "Estonia", "Finland",
        "France", "Germany", "Greece", "Hungary", "Iceland", "Ireland", "Italy",
        "Latvia", "Lithuania", "Luxembourg", "Netherlands", "Norway", "Poland",
        "Portugal", "Slovak Republic", "Slovenia", "Spain", "Sweden",
        "Switzerland", "Türkiye", "United Kingdom",
        "European Union (27 countries)",
    ],
    "Americas": ["Brazil", "Canada", "Chile", "Colombia", "Costa Rica", "Mexico",
                 "United States"],
    "Asia": ["Israel", "Japan", "Korea"],
    "Oceania": ["Australia", "New Zealand"],
    "Africa": ["South Africa"],
}
AGGREGATE_REGION = "OECD Average"
OTHER_REGION = "Other"

REGION_COLORS = {
    "Europe": "#1f77b4",
    "Americas": "#ff7f0e",
    "Asia": "#2ca02c",
    "Oceania": "#d62728",
    "Africa": "#9467bd",
    AGGREGATE_REGION: "#7f7f7f",
    OTHER_REGION: "#bcbd22",
}

# ----- Country codes (ISO-3 for the map, ISO-2 for flag emoji) -----
COUNTRY_CODES = {
    "Australia": ("AUS", "AU"),
    "Austria": ("AUT", "AT"),
    "Belgium": ("BEL", "BE"),
    "Brazil": ("BRA", "BR"),
    "Canada": ("CAN", "CA"),
    "Chile": ("CHL", "CL"),
    "Colombia": ("COL", "CO"),
    "Costa Rica": ("CRI", "CR"),
    "Czechia": ("CZE", "CZ"),
    "Czech Republic": ("CZE", "CZ"),
    "Denmark": ("DNK", "DK"),
    "Estonia": ("EST", "EE"),
    "Finland": ("FIN", "FI"),
    "France": ("FRA", "FR"),
    "Germany": ("DEU", "DE"),
    "Greece": ("GRC", "GR"),
    "Hungary": ("HUN", "HU"),
    "Iceland": ("ISL", "IS"),
    "Ireland": ("IRL", "IE"),
    "Israel": ("ISR", "IL"),
    "Italy": ("ITA", "IT"),
    "Japan": ("JPN", "JP"),
    "Korea": ("KOR", "KR"),
    "Latvia": ("LVA", "LV"),
    "Lithuania": ("LTU", "LT"),
    "Luxembourg": ("LUX", "LU"),
    "Mexico": ("MEX", "MX"),
    "Netherlands": ("NLD", "NL"),
    "New Zealand": ("NZL", "NZ"),
    "Norway": ("NOR", "NO"),
    "Poland": ("POL", "PL"),
    "Portugal": ("PRT", "PT"),
    "Russia": ("RUS", "RU"),
    "Slovak Republic": ("SVK", "SK"),
    "Slovenia": ("SVN", "SI"),
    "South Africa": ("ZAF", "ZA"),
    "Spain": ("ESP", "ES"),
    "Sweden": ("SWE", "SE"),
    "Switzerland": ("CHE", "CH"),
    "Türkiye": ("TUR", "TR"),
    "Turkey": ("TUR", "TR"),
    "United Kingdom": ("GBR", "GB"),
    "United States": ("USA", "US"),
}

# ----- Heatmap -----
# Pairs worth pointing out on the correlation heatmap
HEATMAP_HIGHLIGHTS = [
    ("Labour market insecurity", "Long-term unemployment rate"),
    ("GDP per capita (USD)", "Personal earnings"),
    ("Employment rate", "Water quality"),
    ("Dwellings without basic facilities", "Homicide rate"),
    ("Personal earnings", "Life satisfaction"),
    ("Student skills", "Homicide rate"),
    ("Rooms per person", "Air pollution"),
    ("Air pollution", "Life satisfaction"),
    ("Student skills", "Employees working very long hours"),
    ("Educational attainment", "Employees working very long hours"),
]

# ----- Dashboard defaults -----
DEFAULT_SCATTER_X = "Job satisfaction"
DEFAULT_SCATTER_Y = "Life satisfaction"
DEFAULT_SCALE_BY_POPULATION = False
DEFAULT_COLOR_SCALE = "Viridis"
COLOR_SCALES = [
    "Viridis", "Plasma", "Cividis", "Turbo", "Blues", "Greens", "YlGnBu",
]
TOP_N_OPTIONS = ["Top 3", "Top 5", "Top 10", "All"]
DEFAULT_TOP_N = "Top 10"
RANKING_TOP_N = 40

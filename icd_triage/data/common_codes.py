"""
Common ICD-10-CM codes seeded into the lookup cache at startup.
Descriptions are the official CMS short titles.
"""

# (code, description, category)
COMMON_CODES: list[tuple[str, str, str]] = [
    ("I10", "Essential (primary) hypertension", "I"),
    ("E11.9", "Type 2 diabetes mellitus without complications", "E"),
    ("J44.9", "Chronic obstructive pulmonary disease, unspecified", "J"),
    ("M79.3", "Panniculitis, unspecified", "M"),
    ("I25.10", "Atherosclerotic heart disease of native coronary artery without angina pectoris", "I"),
    ("E78.5", "Hyperlipidemia, unspecified", "E"),
    ("F41.9", "Anxiety disorder, unspecified", "F"),
    ("M54.5", "Low back pain", "M"),
    ("R07.9", "Chest pain, unspecified", "R"),
    ("Z00.00", "Encounter for general adult medical examination without abnormal findings", "Z"),
]

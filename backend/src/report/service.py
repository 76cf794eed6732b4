from src.report.schemas import PersonalityTrait, ReportData, SchoolRecommendation

SAMPLE_REPORT = ReportData(
    personality_traits=[
        PersonalityTrait(name="Creativity", value=85),
        PersonalityTrait(name="Logic", value=60),
        PersonalityTrait(name="Social", value=75),
        PersonalityTrait(name="Leadership", value=90),
        PersonalityTrait(name="Rigour", value=45),
    ],
    recommended_schools=[
        SchoolRecommendation(id="1", name="HETIC", match_score=95, type="Digital & Tech", location="Montreuil"),
        SchoolRecommendation(id="2", name="Gobelins", match_score=88, type="Image & Design", location="Paris"),
        SchoolRecommendation(id="3", name="IESEG", match_score=72, type="Business", location="Lille/Paris"),
    ],
    career_paths=[
        "Product Designer",
        "Digital Project Manager",
        "Art Director",
    ],
)


def get_report(uid: str) -> ReportData:
    """Precomputed advisory report. Every premium profile gets the same one for now."""
    return SAMPLE_REPORT

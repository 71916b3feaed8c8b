# neobili/main.py

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field, field_validator

from neobili.calculator import BiliCalculator, calculate_age_hours, generate_assessment
from neobili.chart import chart_caption, render_nomogram
from neobili.constants import (
    AGE_LIMITS,
    FORM_LABELS,
    GUIDELINE,
    NEUROTOXICITY_RISK_FACTORS,
    RISK_PANEL_COLORS,
    VERSION,
)
from neobili.core_thresholds import BiliThresholdEngine
from neobili.models import (
    BiliResult,
    ClinicalInputError,
    FormData,
    GestationalAge,
    NeurotoxicityRisk,
)

# --- 1. CONFIGURATION & LOGGING ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("neobili-api")

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

app = FastAPI(
    title="NeoBili API",
    version=VERSION,
    description="Calculator and clinical decision support for the AAP 2022 guidelines for the "
                "management of hyperbilirubinemia in newborns 35 or more weeks of gestation.\n\n"
                "**WARNING**: Decision Support Tool Only. Clinical judgment should always guide care.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
def health_check():
    """K8s/AWS Health Probe"""
    return {"status": "active", "version": VERSION, "module": "neobili-threshold-engine"}

# --- 2. INPUT SCHEMAS ---
class ThresholdRequest(BaseModel):
    # The 1-336 h range is the form's hint only; any age is calculated
    age_hours: int = Field(..., description="Postnatal age in hours (1-336 expected)")
    gestation: GestationalAge = Field(default=GestationalAge.WEEKS_38_39)
    neurotoxicity: NeurotoxicityRisk = Field(default=NeurotoxicityRisk.NO_RISK)

    class Config:
        json_schema_extra = {
            "example": {"age_hours": 48, "gestation": "38 to 39 weeks", "neurotoxicity": "no-risk"}
        }

class AssessmentRequest(BaseModel):
    """Same fields as the HTML form. Ages/levels may be comma-separated lists."""
    gestation: str = GestationalAge.WEEKS_38_39.value
    age: str = Field("", description="Age in hours, e.g. '48' or '24,36,48'")
    bilirubin: str = Field("", description="mg/dL (optional), e.g. '12.5' or '8,11,14.2'")
    neurotoxicity: str = NeurotoxicityRisk.NO_RISK.value

    @field_validator("age", "bilirubin", mode="before")
    @classmethod
    def numbers_as_text(cls, v):
        """Accept bare numbers as well as the form's text."""
        if v is None:
            return ""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    class Config:
        json_schema_extra = {
            "example": {"gestation": "38 to 39 weeks", "age": "48", "bilirubin": "16.2",
                        "neurotoxicity": "no-risk"}
        }

class AgeRequest(BaseModel):
    date_of_birth: datetime
    date_of_measurement: datetime

# --- 3. RESPONSE SCHEMAS (mirror the dataclasses in models.py) ---
class ThresholdResponse(BaseModel):
    phototherapy: float
    exchange: float

class MeasurementResponse(BaseModel):
    age_hours: int
    bilirubin_mg_dl: float

class AssessmentResponse(BaseModel):
    age: int
    age_description: str
    bilirubin: float
    thresholds: ThresholdResponse
    risk_level: str
    recommendation: str
    gestation: str
    neurotoxicity: str
    has_risk_factors: bool
    phototherapy: str
    escalation: str
    exchange: str
    confirmatory: str
    intensive_phototherapy: bool
    discontinuation_level: str
    follow_up_actions: List[str]
    clinical_notes: List[str]
    measurements: List[MeasurementResponse]
    rate_of_rise: Optional[float] = None
    no_risk_thresholds: Optional[ThresholdResponse] = None
    generated_at: datetime = Field(default_factory=datetime.now)

class AgeResponse(BaseModel):
    age_hours: int

# --- 4. API ENDPOINTS ---

@app.post("/api/thresholds", response_model=ThresholdResponse)
def get_thresholds(request: ThresholdRequest):
    """Phototherapy and exchange thresholds for one age / gestation / risk combination."""
    return BiliThresholdEngine.calculate_thresholds(
        request.age_hours, request.gestation, request.neurotoxicity.has_risk_factors
    )

@app.post("/api/assess", response_model=AssessmentResponse)
def assess(request: AssessmentRequest):
    """Runs the full form calculation: thresholds, risk tier and recommendations."""
    try:
        form = FormData(
            gestation=request.gestation,
            age=request.age,
            bilirubin=request.bilirubin,
            neurotoxicity=request.neurotoxicity,
        )
        return generate_assessment(form)

    except ClinicalInputError as e:
        logger.warning(f"Clinical Validation Error: {str(e)}")
        raise HTTPException(status_code=422, detail=f"Clinical Validation Error: {str(e)}")

    except Exception as e:
        logger.error(f"Internal Engine Failure: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Threshold Engine Error")

@app.post("/api/age", response_model=AgeResponse)
def calculate_age(request: AgeRequest):
    """Hours between birth and measurement, rounded up."""
    try:
        hours = calculate_age_hours(request.date_of_birth.isoformat(),
                                    request.date_of_measurement.isoformat())
    except TypeError as e:
        # Mixed timezone-aware and naive datetimes
        raise HTTPException(status_code=422, detail=f"Clinical Validation Error: {str(e)}")
    return {"age_hours": hours}

@app.get("/api/chart.svg")
def chart_svg(
    age: str = Query(..., description="Age in hours or comma-separated list"),
    bilirubin: str = Query(""),
    gestation: str = Query(GestationalAge.WEEKS_38_39.value),
    neurotoxicity: str = Query(NeurotoxicityRisk.NO_RISK.value),
    plot_scale: str = Query("automatic"),
    plot_choice: str = Query("peditools"),
):
    """The nomogram as a standalone SVG image."""
    form = FormData(gestation=gestation, age=age, bilirubin=bilirubin, neurotoxicity=neurotoxicity)
    try:
        result = generate_assessment(form)
    except ClinicalInputError as e:
        raise HTTPException(status_code=422, detail=f"Clinical Validation Error: {str(e)}")
    return Response(content=render_nomogram(result, plot_scale, plot_choice),
                    media_type="image/svg+xml")

# --- 5. HTML FORM ---

# Hidden fields echoing the inputs of the displayed result
LAST_PREFIX = "last_"
LAST_FIELDS = ("gestation", "age", "bilirubin", "neurotoxicity")

def _render_page(request: Request, calculator: BiliCalculator, status_code: int = 200):
    result: Optional[BiliResult] = calculator.result
    context = {
        "form": calculator.data,
        "calculated_age": calculator.calculated_age,
        "result": result,
        "submitted": calculator.submitted,
        "last_prefix": LAST_PREFIX,
        "last_fields": LAST_FIELDS,
        "alert": calculator.alert,
        "chart_svg": render_nomogram(result, calculator.data.plot_scale, calculator.data.plot_choice)
                     if result else None,
        "chart_caption": chart_caption(result) if result else None,
        "risk_colors": RISK_PANEL_COLORS.get(result.risk_level) if result else None,
        "gestation_options": [g.value for g in GestationalAge],
        "labels": FORM_LABELS,
        "age_limits": AGE_LIMITS,
        "risk_factors": NEUROTOXICITY_RISK_FACTORS,
        "guideline": GUIDELINE,
        "version": VERSION,
    }
    return templates.TemplateResponse(request, "index.html", context, status_code=status_code)

@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    return _render_page(request, BiliCalculator())

@app.post("/", response_class=HTMLResponse)
async def submit_form(request: Request):
    """
    Single form post. `action` selects what the button did:
    submit (default), calculate_age, or reset.
    """
    submitted = dict(await request.form())
    action = submitted.pop("action", "submit")
    previous = {name[len(LAST_PREFIX):]: submitted.pop(name)
                for name in list(submitted) if name.startswith(LAST_PREFIX)}
    calculator = BiliCalculator.from_form(submitted)

    if action == "reset":
        calculator.reset()
        return _render_page(request, calculator)

    # The last result stays on screen until a new one replaces it
    if previous:
        calculator.restore(BiliCalculator.from_form(previous).data)

    if action == "calculate_age":
        calculator.calculate_age()
        return _render_page(request, calculator)

    try:
        calculator.submit()
    except ClinicalInputError:
        return _render_page(request, calculator, status_code=422)
    return _render_page(request, calculator)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("neobili.main:app", host="0.0.0.0", port=8000)

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def now_minute() -> str:
    """Local-time stamp in the ``YYYY-MM-DDTHH:MM`` form datetime inputs use."""
    return datetime.now().strftime("%Y-%m-%dT%H:%M")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# Controlled vocabularies offered by the form. They are NOT enforced by the
# models below; validation.py reports mismatches as warnings.
VOCAB: Dict[str, List[str]] = {
    "category": ["Igneous", "Sedimentary", "Metamorphic", "Vein / Hydrothermal",
                 "Gossan / Iron-oxide", "Regolith / Soil", "Unknown"],
    "context": ["Float", "Outcrop", "Subcrop", "Colluvium", "Alluvium"],
    "weathering": ["Fresh", "Slightly weathered", "Moderately weathered",
                   "Highly weathered", "Completely weathered"],
    "lustre": ["Dull", "Earthy", "Vitreous", "Metallic", "Submetallic", "Resinous",
               "Waxy", "Pearly", "Silky"],
    "grainSize": ["Clay", "Silt", "Sand", "Granule", "Pebble", "Cobble", "Boulder"],
    "fabric": ["Massive", "Bedded", "Laminated", "Foliated", "Banded", "Brecciated",
               "Vesicular", "Porphyritic"],
    "hardness": ["1", "2", "3", "4", "5", "6", "7", "8", "9"],
    "streak": ["White", "Grey", "Black", "Red-brown", "Yellow-brown", "Green", "None"],
    "magnetism": ["None", "Weak", "Moderate", "Strong"],
    "hcl": ["None", "Weak", "Moderate", "Strong"],
    "specificGravity": ["Light", "Normal", "Heavy", "Very heavy"],
    "minerals": ["Quartz", "Feldspar", "Mica", "Calcite", "Dolomite", "Hematite",
                 "Goethite", "Limonite", "Magnetite", "Chlorite", "Epidote",
                 "Malachite", "Azurite", "Chrysocolla", "Garnet", "Amphibole",
                 "Pyroxene", "Olivine"],
    "alteration": ["Silicification", "Sericitization", "Chloritization",
                   "Hematization", "Epidotization", "Argillic", "Propylitic",
                   "Potassic", "Carbonate"],
    "sulfides": ["Pyrite", "Chalcopyrite", "Galena", "Sphalerite", "Arsenopyrite",
                 "Pyrrhotite", "Bornite", "Chalcocite", "Molybdenite"],
}


class CamelModel(BaseModel):
    """Python attributes in snake_case, wire/storage keys in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


# --- Sample / outcrop records ---

class SampleForm(CamelModel):
    sample_id: str = "MDO"
    project: str = ""
    date: str = Field(default_factory=now_minute)
    lat: str = ""
    lon: str = ""
    elevation: str = ""

    category: str = ""
    context: str = ""
    weathering: str = ""
    colour: str = ""
    lustre: str = ""
    grain_size: str = ""
    fabric: str = ""
    texture: str = ""
    hardness: str = ""
    streak: str = ""
    magnetism: str = ""
    hcl: str = ""
    specific_gravity: str = ""

    minerals: List[str] = []
    alteration: List[str] = []
    sulfides: List[str] = []

    notes: str = ""

    @field_validator("lat", "lon", "elevation", "hardness", mode="before")
    @classmethod
    def _stringify(cls, v):
        # Numeric inputs arrive as numbers from some clients; keep the raw text.
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


SET_FIELDS = ("minerals", "alteration", "sulfides")


class ElementStats(BaseModel):
    """Statistics for one element across an imported pXRF file."""
    n: int = 0
    min: Optional[float] = None
    median: Optional[float] = None
    mean: Optional[float] = None
    max: Optional[float] = None


class PxrfData(CamelModel):
    rows: List[Dict[str, Any]] = []
    summary: Dict[str, ElementStats] = {}


class SampleRecord(CamelModel):
    form: SampleForm = Field(default_factory=SampleForm)
    photos: List[str] = []
    active_photo: Optional[int] = None
    pxrf: PxrfData = Field(default_factory=PxrfData)
    created_at: str = Field(default_factory=now_iso)


class SampleSummary(CamelModel):
    id: str
    project: str
    date: str = ""
    has_photos: bool = False


# --- Boreholes ---

def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class Interval(CamelModel):
    id: str
    from_m: Optional[float] = Field(default=None, alias="from")
    to_m: Optional[float] = Field(default=None, alias="to")
    lithology: str = ""
    description: str = ""

    @field_validator("from_m", "to_m", mode="before")
    @classmethod
    def _blank_depths(cls, v):
        return _blank_to_none(v)


class BoreholeCollar(CamelModel):
    hole_id: str = "DDH"
    project: str = ""
    date: str = Field(default_factory=now_minute)
    lat: str = ""
    lon: str = ""
    elevation: str = ""
    azimuth: Optional[float] = None
    dip: Optional[float] = None
    total_depth: Optional[float] = None
    notes: str = ""

    @field_validator("azimuth", "dip", "total_depth", mode="before")
    @classmethod
    def _blank_numbers(cls, v):
        return _blank_to_none(v)


class BoreholeRecord(CamelModel):
    collar: BoreholeCollar = Field(default_factory=BoreholeCollar)
    intervals: List[Interval] = []
    created_at: str = Field(default_factory=now_iso)


class BoreholeSummary(CamelModel):
    id: str
    project: str
    date: str = ""
    intervals: int = 0


class IntervalIn(CamelModel):
    from_m: Optional[float] = Field(default=None, alias="from")
    to_m: Optional[float] = Field(default=None, alias="to")
    lithology: str = ""
    description: str = ""

    @field_validator("from_m", "to_m", mode="before")
    @classmethod
    def _blank_depths(cls, v):
        return _blank_to_none(v)


# --- Request / response bodies ---

class DescribeRequest(CamelModel):
    form: Dict[str, Any] = {}
    photo_url: Optional[str] = None
    pxrf_summary: Optional[Dict[str, Any]] = None


class DescribeResponse(BaseModel):
    description: str
    model: Optional[str] = None


class FormAction(CamelModel):
    """One mutation applied through FormState.dispatch."""
    type: Literal["set", "toggle", "add_photos", "select_photo", "make_primary",
                  "delete_photo", "import_pxrf", "reset"]
    field: Optional[str] = None
    value: Any = None
    index: Optional[int] = None
    images: List[str] = []
    csv: Optional[str] = None


class PatchRequest(BaseModel):
    actions: List[FormAction]


class PhotoUpload(BaseModel):
    images: List[str]


class PhotoUploadResponse(BaseModel):
    added: int
    failed: List[str] = []
    photos: int


class PxrfImport(BaseModel):
    csv: str


class ColourRequest(CamelModel):
    photo_url: str


class ColourSummaryOut(CamelModel):
    name: str
    rgb: List[int]
    hex: str
    hsv: List[float]
    iron_oxide_likely: bool


class DraftResponse(CamelModel):
    draft: str
    colour: Optional[ColourSummaryOut] = None


class IssueOut(BaseModel):
    field: str
    message: str
    severity: str
    value: Any = None


class BoreholeAction(CamelModel):
    """One mutation applied through BoreholeState.dispatch."""
    type: Literal["set", "add_interval", "update_interval", "delete_interval", "reset"]
    field: Optional[str] = None
    value: Any = None
    id: Optional[str] = None


class BoreholePatchRequest(BaseModel):
    actions: List[BoreholeAction]

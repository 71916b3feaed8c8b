"""
Nomogram renderer: builds the inline SVG shown under the results.
Curves are sampled from the threshold engine, so the plot always matches
the numbers in the results panel.
"""

from typing import List, Sequence, Tuple

from neobili.constants import CHART_GEOMETRY as G
from neobili.core_thresholds import BiliThresholdEngine
from neobili.models import BiliResult, NeurotoxicityRisk, PlotChoice, PlotScale

Point = Tuple[float, float]

def visible_hours(result: BiliResult, plot_scale: str) -> int:
    """Zoomed 0-168 h view unless full-sized is asked for or the age needs it."""
    if plot_scale == PlotScale.FULL_SIZED.value:
        return G.FULL_HOURS
    latest_age = max((m.age_hours for m in result.measurements), default=result.age)
    return G.ZOOMED_HOURS if latest_age <= G.ZOOMED_HOURS else G.FULL_HOURS

def _x(age_hours: float, x_max: int) -> float:
    age_hours = min(max(age_hours, 0), x_max)
    return G.X_ORIGIN + age_hours * (G.X_END - G.X_ORIGIN) / x_max

def _y(bilirubin: float) -> float:
    return min(max(G.Y_ORIGIN - bilirubin * G.PX_PER_MG_DL, G.Y_TOP), G.Y_ORIGIN)

def _sample_ages(x_max: int) -> List[int]:
    # 25 h keeps the step between the first two phototherapy bands visible
    return sorted({1, 25, *range(G.SAMPLE_STEP_HOURS, x_max + 1, G.SAMPLE_STEP_HOURS)})

def _curve_points(gestation: str, has_risk_factors: bool, x_max: int) -> Tuple[List[Point], List[Point]]:
    curve = BiliThresholdEngine.threshold_curve(gestation, has_risk_factors, _sample_ages(x_max))
    photo = [(_x(age, x_max), _y(pair.phototherapy)) for age, pair in curve]
    exchange = [(_x(age, x_max), _y(pair.exchange)) for age, pair in curve]
    return photo, exchange

def _path(points: Sequence[Point]) -> str:
    head, *tail = points
    d = f"M {head[0]:.1f} {head[1]:.1f}"
    for x, y in tail:
        d += f" L {x:.1f} {y:.1f}"
    return d

def _polygon(points: Sequence[Point]) -> str:
    return " ".join(f"{x:.1f},{y:.1f}" for x, y in points)

def _axes(x_max: int) -> List[str]:
    parts = [
        '<defs>',
        '<pattern id="grid" width="20" height="20" patternUnits="userSpaceOnUse">',
        f'<path d="M 20 0 L 0 0 0 20" fill="none" stroke="{G.GRID_COLOR}" stroke-width="1"/>',
        '</pattern>',
        '</defs>',
        f'<rect width="{G.WIDTH}" height="{G.HEIGHT}" fill="url(#grid)"/>',
        f'<line x1="{G.X_ORIGIN}" y1="{G.Y_ORIGIN}" x2="{G.X_END}" y2="{G.Y_ORIGIN}" '
        f'stroke="{G.AXIS_COLOR}" stroke-width="2"/>',
        f'<line x1="{G.X_ORIGIN}" y1="{G.Y_ORIGIN}" x2="{G.X_ORIGIN}" y2="{G.Y_TOP}" '
        f'stroke="{G.AXIS_COLOR}" stroke-width="2"/>',
    ]
    tick_step = 24 if x_max <= G.ZOOMED_HOURS else 48
    for hours in range(tick_step, x_max + 1, tick_step):
        parts.append(f'<text x="{_x(hours, x_max):.1f}" y="175" text-anchor="middle" '
                     f'font-size="10" fill="{G.AXIS_COLOR}">{hours}h</text>')
    for bili in range(5, G.MAX_BILIRUBIN_LABEL + 1, 5):
        parts.append(f'<text x="35" y="{_y(bili) + 5:.1f}" text-anchor="end" '
                     f'font-size="10" fill="{G.AXIS_COLOR}">{bili}</text>')
    return parts

def _legend(has_patient: bool) -> List[str]:
    parts = [
        '<g transform="translate(250, 30)">',
        f'<line x1="0" y1="0" x2="20" y2="0" stroke="{G.PHOTOTHERAPY_COLOR}" stroke-width="3" stroke-dasharray="5,5"/>',
        f'<text x="25" y="4" font-size="10" fill="{G.PHOTOTHERAPY_COLOR}">Phototherapy</text>',
        f'<line x1="0" y1="15" x2="20" y2="15" stroke="{G.EXCHANGE_COLOR}" stroke-width="3"/>',
        f'<text x="25" y="19" font-size="10" fill="{G.EXCHANGE_COLOR}">Exchange</text>',
    ]
    if has_patient:
        parts += [
            f'<circle cx="10" cy="30" r="4" fill="{G.PATIENT_COLOR}"/>',
            f'<text x="25" y="34" font-size="10" fill="{G.PATIENT_COLOR}">Patient</text>',
        ]
    parts.append('</g>')
    return parts

def render_nomogram(result: BiliResult,
                    plot_scale: str = PlotScale.AUTOMATIC.value,
                    plot_choice: str = PlotChoice.PEDITOOLS.value) -> str:
    """
    Returns a standalone <svg> element.
    plot_scale / plot_choice only change the drawing, never the thresholds.
    """
    x_max = visible_hours(result, plot_scale)
    photo, exchange = _curve_points(result.gestation, result.has_risk_factors, x_max)

    parts = [f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {G.WIDTH} {G.HEIGHT}" '
             f'class="nomogram" data-plot-scale="{x_max}h">']
    parts += _axes(x_max)

    if plot_choice != PlotChoice.ORIGINAL.value:
        # Custom plot: shade the phototherapy zone and the exchange zone
        top = [(exchange[-1][0], G.Y_TOP), (exchange[0][0], G.Y_TOP)]
        parts.append(f'<polygon class="zone-phototherapy" points="{_polygon(photo + exchange[::-1])}" '
                     f'fill="{G.PHOTOTHERAPY_COLOR}" fill-opacity="0.15"/>')
        parts.append(f'<polygon class="zone-exchange" points="{_polygon(exchange + top)}" '
                     f'fill="{G.EXCHANGE_COLOR}" fill-opacity="0.12"/>')

    if result.neurotoxicity == NeurotoxicityRisk.SHOW_BOTH.value:
        base_photo, base_exchange = _curve_points(result.gestation, False, x_max)
        parts.append(f'<path class="curve-phototherapy-no-risk" d="{_path(base_photo)}" fill="none" '
                     f'stroke="{G.PHOTOTHERAPY_COLOR}" stroke-width="2" stroke-dasharray="5,5" opacity="0.45"/>')
        parts.append(f'<path class="curve-exchange-no-risk" d="{_path(base_exchange)}" fill="none" '
                     f'stroke="{G.EXCHANGE_COLOR}" stroke-width="2" opacity="0.45"/>')

    parts.append(f'<path class="curve-phototherapy" d="{_path(photo)}" fill="none" '
                 f'stroke="{G.PHOTOTHERAPY_COLOR}" stroke-width="3" stroke-dasharray="5,5"/>')
    parts.append(f'<path class="curve-exchange" d="{_path(exchange)}" fill="none" '
                 f'stroke="{G.EXCHANGE_COLOR}" stroke-width="3"/>')

    points = [(_x(m.age_hours, x_max), _y(m.bilirubin_mg_dl))
              for m in result.measurements if m.bilirubin_mg_dl > 0]
    if len(points) > 1:
        parts.append(f'<polyline class="patient-trend" points="{_polygon(points)}" fill="none" '
                     f'stroke="{G.PATIENT_COLOR}" stroke-width="1.5"/>')
    for cx, cy in points:
        parts.append(f'<circle class="patient-point" cx="{cx:.1f}" cy="{cy:.1f}" r="5" '
                     f'fill="{G.PATIENT_COLOR}" stroke="#ffffff" stroke-width="2"/>')

    parts += _legend(bool(points))
    parts.append('</svg>')
    return "\n".join(parts)

def chart_caption(result: BiliResult) -> str:
    caption = f"Age-specific bilirubin thresholds for {result.gestation} gestation"
    if result.has_risk_factors:
        caption += " with neurotoxicity risk factors"
    return caption

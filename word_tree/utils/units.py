"""Length conversions.

Word stores font sizes in half-points, paragraph lengths in twips and
drawing extents in EMU (914400 per inch).
"""
EMU_PER_INCH = 914400


def pt_to_half_points(pt: float | None) -> int | None:
    if pt is None:
        return None
    return int(round(pt * 2))


def half_points_to_pt(half_points: int | None) -> float | None:
    if half_points is None:
        return None
    return half_points / 2


def emu_to_inches(emu: int | None) -> float:
    return (emu or 0) / EMU_PER_INCH

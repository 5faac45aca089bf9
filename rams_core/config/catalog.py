"""
The namelist groups recognized by the model.

- MODEL_GRIDS: grid structure, time span
- MODEL_FILE_INFO: start type, output streams and cadences
- MODEL_OPTIONS: physics options
- MODEL_SOUND: the initial sounding

Ranges are inclusive. Per-grid parameters hold MAXGRDS slots.
"""

from rams_core.config.schema import Catalog, NamelistGroup, integer, real, string


MAXGRDS = 8
MAXLITE = 50
MAXSNDG = 200

GRIDS = "MODEL_GRIDS"
FILE_INFO = "MODEL_FILE_INFO"
OPTIONS = "MODEL_OPTIONS"
SOUND = "MODEL_SOUND"


def grids_group():
    return NamelistGroup(GRIDS, (
        string("EXPNME", default="rams_core experiment"),
        string("RUNTYPE", max_length=16, default="INITIAL"),
        string("TIMEUNIT", max_length=1, default="s"),
        real("TIMMAX", 0.0, 1.0e9),
        integer("IMONTH1", 1, 12, default=1),
        integer("IDATE1", 1, 31, default=1),
        integer("IYEAR1", 1900, 2200, default=2000),
        integer("ITIME1", 0, 2359),
        integer("NGRIDS", 1, MAXGRDS, default=1),
        integer("NNXP", 4, 10000, default=10, size=MAXGRDS),
        integer("NNYP", 1, 10000, default=10, size=MAXGRDS),
        integer("NNZP", 4, 1000, default=10, size=MAXGRDS),
        integer("NZG", 2, 100, default=11),
        integer("NZS", 1, 100, default=1),
        integer("NXTNEST", 0, MAXGRDS, size=MAXGRDS),
        integer("IHTRAN", 0, 1),
        real("DELTAX", 1.0e-3, 1.0e7, default=1000.0),
        real("DELTAY", 1.0e-3, 1.0e7, default=1000.0),
        real("DELTAZ", 1.0e-3, 1.0e5, default=100.0),
        real("DZRAT", 1.0, 10.0, default=1.0),
        real("DZMAX", 1.0, 1.0e5, default=1000.0),
        real("DTLONG", 1.0e-3, 3600.0, default=10.0),
        integer("NACOUST", 1, 100, default=3),
        real("POLELAT", -90.0, 90.0),
        real("POLELON", -180.0, 180.0),
        real("CENTLAT", -90.0, 90.0, size=MAXGRDS),
        real("CENTLON", -180.0, 180.0, size=MAXGRDS),
    ))


def file_info_group():
    return NamelistGroup(FILE_INFO, (
        integer("INITIAL", 1, 3, default=1),
        string("VARFPFX", default="./isan"),
        integer("INITORIG", 1, 2, default=1),
        string("HFILIN"),
        integer("IPASTIN", 0, 1),
        string("AFILEPF", default="./a"),
        integer("IOUTPUT", 0, 3, default=2),
        real("FRQSTATE", 0.0, 1.0e9, default=3600.0, size=MAXGRDS),
        real("FRQLITE", 0.0, 1.0e9),
        integer("NLITE_VARS", 0, MAXLITE),
        string("LITE_VARS", max_length=32, size=MAXLITE),
        real("AVGTIM", -1.0e9, 1.0e9),
        real("FRQMEAN", 0.0, 1.0e9),
        real("FRQBOTH", 0.0, 1.0e9),
        integer("IUVWTEND", 0, 1),
        integer("IPRNTSTMT", 0, 1),
    ))


def options_group():
    return NamelistGroup(OPTIONS, (
        integer("NADDSC", 0, 100),
        integer("ICORFLG", 0, 1, default=1),
        integer("IBND", 1, 4, default=1),
        integer("JBND", 1, 4, default=1),
        integer("LSFLG", 0, 3),
        integer("NFPT", 0, 100),
        real("DISTIM", 0.0, 1.0e9),
        integer("ISWRTYP", 0, 3),
        integer("ILWRTYP", 0, 3),
        real("RADFRQ", 0.0, 1.0e9),
        integer("NNQPARM", 0, 2, size=MAXGRDS),
        real("CONFRQ", 0.0, 1.0e9),
        integer("ISFCL", 0, 5, default=1),
        integer("IDIFFK", 1, 4, default=1, size=MAXGRDS),
        real("CSX", 0.0, 10.0, default=0.2, size=MAXGRDS),
        real("CSZ", 0.0, 10.0, default=0.2, size=MAXGRDS),
        integer("LEVEL", 0, 4, default=1),
        integer("ICLOUD", 0, 5),
        integer("IRAIN", 0, 5),
    ))


def sound_group():
    return NamelistGroup(SOUND, (
        integer("IPSFLG", 0, 1, default=1),
        integer("ITSFLG", 0, 3),
        integer("IRTSFLG", 0, 4),
        integer("IUSFLG", 0, 1),
        real("HS", -1.0e4, 1.0e5),
        real("PS", 0.0, 1.0e5, size=MAXSNDG),
        real("TS", -100.0, 1000.0, size=MAXSNDG),
        real("RTS", -100.0, 1000.0, size=MAXSNDG),
        real("US", -500.0, 500.0, size=MAXSNDG),
        real("VS", -500.0, 500.0, size=MAXSNDG),
    ))


def default_catalog() -> Catalog:
    """All groups of the model namelist, validated."""
    return Catalog([grids_group(), file_info_group(), options_group(), sound_group()])

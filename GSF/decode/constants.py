"""Generic Sensor Format (GSF) identifiers, scale divisors and null values

Record and subrecord ids follow the GSF v3 format documentation.  The name <-> id lookups are generated
once from the enums below and should be treated as read only.
"""

from enum import IntEnum

import numpy as np


class RecordID(IntEnum):
    HEADER = 1
    SWATH_BATHYMETRY_PING = 2
    SOUND_VELOCITY_PROFILE = 3
    PROCESSING_PARAMETERS = 4
    SENSOR_PARAMETERS = 5
    COMMENT = 6
    HISTORY = 7
    NAVIGATION_ERROR = 8  # obsolete
    SWATH_BATHY_SUMMARY = 9
    SINGLE_BEAM_PING = 10  # use discouraged
    HV_NAVIGATION_ERROR = 11  # replaces navigation error
    ATTITUDE = 12


class SubRecordID(IntEnum):
    UNKNOWN = 0
    # beam arrays
    DEPTH = 1
    ACROSS_TRACK = 2
    ALONG_TRACK = 3
    TRAVEL_TIME = 4
    BEAM_ANGLE = 5
    MEAN_CAL_AMPLITUDE = 6
    MEAN_REL_AMPLITUDE = 7
    ECHO_WIDTH = 8
    QUALITY_FACTOR = 9
    RECEIVE_HEAVE = 10
    DEPTH_ERROR = 11  # obsolete
    ACROSS_TRACK_ERROR = 12  # obsolete
    ALONG_TRACK_ERROR = 13  # obsolete
    NOMINAL_DEPTH = 14
    QUALITY_FLAGS = 15  # obsolete
    BEAM_FLAGS = 16
    SIGNAL_TO_NOISE = 17
    BEAM_ANGLE_FORWARD = 18
    VERTICAL_ERROR = 19
    HORIZONTAL_ERROR = 20
    INTENSITY_SERIES = 21
    SECTOR_NUMBER = 22
    DETECTION_INFO = 23
    INCIDENT_BEAM_ADJ = 24
    SYSTEM_CLEANING = 25
    DOPPLER_CORRECTION = 26
    SONAR_VERT_UNCERTAINTY = 27
    SONAR_HORZ_UNCERTAINTY = 28
    DETECTION_WINDOW = 29
    MEAN_ABS_COEF = 30
    TVG_DB = 31

    SCALE_FACTORS = 100

    # sensor specific
    SEABEAM = 102
    EM12 = 103
    EM100 = 104
    EM950 = 105
    EM121A = 106
    EM121 = 107
    SASS = 108  # obsolete
    SEAMAP = 109
    SEABAT = 110
    EM1000 = 111
    TYPEIII_SEABEAM = 112  # obsolete
    SB_AMP = 113
    SEABAT_II = 114
    SEABAT_8101 = 115
    SEABEAM_2112 = 116
    ELAC_MKII = 117
    EM3000 = 118
    EM1002 = 119
    EM300 = 120
    CMP_SASS = 121
    RESON_8101 = 122
    RESON_8111 = 123
    RESON_8124 = 124
    RESON_8125 = 125
    RESON_8150 = 126
    RESON_8160 = 127
    EM120 = 128
    EM3002 = 129
    EM3000D = 130
    EM3002D = 131
    EM121A_SIS = 132
    EM710 = 133
    EM302 = 134
    EM122 = 135
    GEOSWATH_PLUS = 136
    KLEIN_5410_BSS = 137
    RESON_7125 = 138
    EM2000 = 139
    EM300_RAW = 140
    EM1002_RAW = 141
    EM2000_RAW = 142
    EM3000_RAW = 143
    EM120_RAW = 144
    EM3002_RAW = 145
    EM3000D_RAW = 146
    EM3002D_RAW = 147
    EM121A_SIS_RAW = 148
    EM2040 = 149
    DELTA_T = 150
    R2SONIC_2022 = 151
    R2SONIC_2024 = 152
    R2SONIC_2020 = 153
    SR_NOT_DEFINED = 154  # reserved, never defined by the format
    RESON_TSERIES = 155
    KMALL = 156

    # single beam
    SB_ECHOTRAC = 201
    SB_BATHY2000 = 202
    SB_MGD77 = 203
    SB_BDB = 204
    SB_NOSHDB = 205
    SWATH_SB_ECHOTRAC = 206
    SWATH_SB_BATHY2000 = 207
    SWATH_SB_MGD77 = 208
    SWATH_SB_BDB = 209
    SWATH_SB_NOSHDB = 210
    SWATH_SB_PDD = 211
    SWATH_SB_NAVISOUND = 212


MAX_BEAM_ARRAY_SUBRECORD_ID = 31

record_names = {rec.value: rec.name for rec in RecordID}
record_ids = {rec.name: rec.value for rec in RecordID}
subrecord_names = {sub.value: sub.name for sub in SubRecordID}
subrecord_ids = {sub.name: sub.value for sub in SubRecordID}

# beam array subrecord -> field name used for the per beam arrays, depth is reported as elevation (Z)
beam_field_names = {SubRecordID.DEPTH: 'Z', SubRecordID.ACROSS_TRACK: 'AcrossTrack', SubRecordID.ALONG_TRACK: 'AlongTrack',
                    SubRecordID.TRAVEL_TIME: 'TravelTime', SubRecordID.BEAM_ANGLE: 'BeamAngle',
                    SubRecordID.MEAN_CAL_AMPLITUDE: 'MeanCalAmplitude', SubRecordID.MEAN_REL_AMPLITUDE: 'MeanRelAmplitude',
                    SubRecordID.ECHO_WIDTH: 'EchoWidth', SubRecordID.QUALITY_FACTOR: 'QualityFactor',
                    SubRecordID.RECEIVE_HEAVE: 'ReceiveHeave', SubRecordID.DEPTH_ERROR: 'DepthError',
                    SubRecordID.ACROSS_TRACK_ERROR: 'AcrossTrackError', SubRecordID.ALONG_TRACK_ERROR: 'AlongTrackError',
                    SubRecordID.NOMINAL_DEPTH: 'NominalDepth', SubRecordID.QUALITY_FLAGS: 'QualityFlags',
                    SubRecordID.BEAM_FLAGS: 'BeamFlags', SubRecordID.SIGNAL_TO_NOISE: 'SignalToNoise',
                    SubRecordID.BEAM_ANGLE_FORWARD: 'BeamAngleForward', SubRecordID.VERTICAL_ERROR: 'VerticalError',
                    SubRecordID.HORIZONTAL_ERROR: 'HorizontalError', SubRecordID.INTENSITY_SERIES: 'IntensitySeries',
                    SubRecordID.SECTOR_NUMBER: 'SectorNumber', SubRecordID.DETECTION_INFO: 'DetectionInfo',
                    SubRecordID.INCIDENT_BEAM_ADJ: 'IncidentBeamAdj', SubRecordID.SYSTEM_CLEANING: 'SystemCleaning',
                    SubRecordID.DOPPLER_CORRECTION: 'DopplerCorrection',
                    SubRecordID.SONAR_VERT_UNCERTAINTY: 'SonarVertUncertainty',
                    SubRecordID.SONAR_HORZ_UNCERTAINTY: 'SonarHorzUncertainty',
                    SubRecordID.DETECTION_WINDOW: 'DetectionWindow', SubRecordID.MEAN_ABS_COEF: 'MeanAbsCoef'}
beam_field_ids = {v: k for k, v in beam_field_names.items()}

# fixed divisors applied to the ping header and other format defined fields
SCALE_1 = 10.0
SCALE_2 = 100.0
SCALE_3 = 1000.0
SCALE_4 = 10000.0
SCALE_5 = 100000.0
SCALE_6 = 1000000.0
SCALE_7 = 10000000.0

# scale factor field size codes, high nibble of the compression flag byte
FIELD_SIZE_DEFAULT = 0x00
FIELD_SIZE_ONE = 0x10
FIELD_SIZE_TWO = 0x20
FIELD_SIZE_FOUR = 0x40

NULL_LATITUDE = 91.0
NULL_LONGITUDE = 181.0
NULL_HEADING = 361.0
NULL_COURSE = 361.0
NULL_SPEED = 99.0
NULL_PITCH = 99.0
NULL_ROLL = 99.0
NULL_HEAVE = 99.0
NULL_DRAFT = 0.0
NULL_DEPTH_CORRECTOR = 99.99
NULL_TIDE_CORRECTOR = 99.99
NULL_SOUND_SPEED_CORRECTION = 99.99
NULL_HORIZONTAL_ERROR = -1.0
NULL_VERTICAL_ERROR = -1.0
NULL_HEIGHT = 9999.99
NULL_SEP = 9999.99
NULL_GPS_TIDE_CORRECTOR = 99.99

# null value for each beam array field when a ping is missing it, flags get an integer zero
beam_nulls = {name: 0.0 for name in beam_field_names.values()}
beam_nulls['BeamFlags'] = np.uint8(0)
beam_nulls['QualityFlags'] = np.uint8(0)

# intensity series and its per beam companion fields
intensity_nulls = {'TimeSeries': np.nan, 'BottomDetectIndex': 0, 'StartRange': 0, 'TsMean': np.nan, 'sample_count': 0}

ping_header_nulls = {'Longitude': NULL_LONGITUDE, 'Latitude': NULL_LATITUDE, 'TideCorrector': NULL_TIDE_CORRECTOR,
                     'DepthCorrector': NULL_DEPTH_CORRECTOR, 'Heading': NULL_HEADING, 'Pitch': NULL_PITCH,
                     'Roll': NULL_ROLL, 'Heave': NULL_HEAVE, 'Course': NULL_COURSE, 'Speed': NULL_SPEED,
                     'Height': NULL_HEIGHT, 'Separation': NULL_SEP, 'GpsTideCorrector': NULL_GPS_TIDE_CORRECTOR}


def subrecord_name(subrecord_id: int):
    """Name for the subrecord id, ids not defined by the format come back as UNKNOWN_<id>"""
    try:
        return subrecord_names[subrecord_id]
    except KeyError:
        return f'UNKNOWN_{subrecord_id}'


def record_name(record_id: int):
    try:
        return record_names[record_id]
    except KeyError:
        return f'UNKNOWN_{record_id}'

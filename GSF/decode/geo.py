import numpy as np


class GeoCoefficients:
    """
    Coefficients of the metres per degree series expansion of an ellipsoid, defaults are WGS84.

    The latitude and longitude lengths of a degree at latitude phi are

    lat_sf = A - B*cos(2phi) + C*cos(4phi) - D*cos(6phi)
    lon_sf = E*cos(phi) - F*cos(3phi) + G*cos(5phi)
    """

    def __init__(self, A=111132.92, B=559.82, C=1.175, D=0.0023, E=111412.84, F=93.5, G=0.118):
        self.A = A
        self.B = B
        self.C = C
        self.D = D
        self.E = E
        self.F = F
        self.G = G

    def metres_per_degree(self, latitude: float):
        """
        Parameters
        ----------
        latitude
            latitude in degrees

        Returns
        -------
        float
            metres per degree of latitude
        float
            metres per degree of longitude
        """
        lat_rad = np.deg2rad(latitude)
        lat_sf = self.A - self.B * np.cos(2.0 * lat_rad) + self.C * np.cos(4.0 * lat_rad) - self.D * np.cos(6.0 * lat_rad)
        lon_sf = self.E * np.cos(lat_rad) - self.F * np.cos(3.0 * lat_rad) + self.G * np.cos(5.0 * lat_rad)
        return lat_sf, lon_sf

    def __repr__(self):
        return f'GeoCoefficients(A={self.A}, B={self.B}, C={self.C}, D={self.D}, E={self.E}, F={self.F}, G={self.G})'


WGS84 = GeoCoefficients()


def beams_lonlat(longitude: float, latitude: float, heading: float, across_track, along_track, coef: GeoCoefficients = WGS84):
    """
    Position every beam of a ping from its across/along track offsets.  The offsets are rotated by the
    ping heading and converted to degrees with the metres per degree at the ping latitude, degenerate near
    the poles where the longitude scale goes to zero.

    Parameters
    ----------
    longitude
        ping reference longitude in degrees
    latitude
        ping reference latitude in degrees
    heading
        ping heading in degrees
    across_track
        numpy array, across track offsets in metres (positive to starboard)
    along_track
        numpy array, along track offsets in metres (positive forward)
    coef
        GeoCoefficients of the ellipsoid

    Returns
    -------
    np.array
        beam longitudes
    np.array
        beam latitudes
    """
    across_track = np.asarray(across_track, dtype=np.float64)
    along_track = np.asarray(along_track, dtype=np.float64)
    lat_sf, lon_sf = coef.metres_per_degree(latitude)
    head_rad = np.deg2rad(heading)
    delta_x = np.sin(head_rad)
    delta_y = np.cos(head_rad)

    lon = longitude + delta_y / lon_sf * across_track + delta_x / lon_sf * along_track
    lat = latitude - delta_x / lat_sf * across_track + delta_y / lat_sf * along_track
    return lon, lat

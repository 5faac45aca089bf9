import math

erad = 6367000.0
"""earth radius [m]"""
omega = 7.292e-5
"""earth rotation rate [1/s]"""
pi180 = math.pi / 180.0

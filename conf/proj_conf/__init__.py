from .default import *

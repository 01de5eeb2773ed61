from .implement import *

from .proj_conf import *

import jax
# import external libraries

jax.config.update('jax_platform_name', 'cpu')
jax.config.update('jax_enable_x64', True)

from . import exceptions
from . import geometry
from . import boundaryconditions
from . import fields
from . import pec
from . import cg
from . import utils
from . import particle
from . import rho
from .solvers import tensor_laplacian
from . import space_charge
from . import errors
from . import initialization

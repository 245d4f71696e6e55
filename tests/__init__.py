from . import boundaryconditions_test
from . import cg_test
from . import errors_test
from . import fields_test
from . import geometry_test
from . import initialization_test
from . import main_test
from . import particle_test
from . import pec_test
from . import rho_test
from . import space_charge_test
from . import tensor_laplacian_test
from . import utils_test

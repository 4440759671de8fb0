from constant_sorrow.constants import NOT_REGISTERED

NOT_REGISTERED.bool_value(False)

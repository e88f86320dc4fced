# src/opioidpk/models/one_compartment.py


def one_compartment_bolus(t, y, ke):
    """
    One-compartment model with first-order elimination, written in concentration.
    One state:
      y[0] = plasma concentration (mg/L)

    Parameters:
      t  : current time (h), unused; the system is time-invariant
      y  : current state vector [C]
      ke : elimination rate constant (1/h)

    Bolus doses are not part of the right-hand side; the solver applies them as
    instantaneous jumps of Dose / V at each administration time.
    """
    return [-ke * y[0]]

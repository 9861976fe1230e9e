"""
Setup file for the Germen package

@author: Paul Bouteiller, CEA DAM/DIF
@email: paul.bouteiller@cea.fr
"""

from setuptools import setup, find_packages
import os

# Création automatique du pyproject.toml s'il n'existe pas
if not os.path.exists('pyproject.toml'):
    with open('pyproject.toml', 'w') as f:
        f.write('[build-system]\nrequires = ["setuptools"]\nbuild-backend = "setuptools.build_meta"')


setup(name="Germen",
      description="Coupled phase-field assembly and distributed nucleation.",
      version = '0.1.0',
      author="Bouteiller Paul",
      author_email="paul.bouteiller@cea.fr",
      packages = find_packages(include=["Germen", "Germen.*"]),
      python_requires=">=3.9",
      install_requires=["numpy", "scipy>=1.12", "mpi4py", "tqdm"],
      extras_require={"fenics": ["fenics-dolfinx", "fenics-basix"],
                      "test": ["pytest"]},
)

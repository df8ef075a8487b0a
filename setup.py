# Copyright (c) 2018-present, Royal Bank of Canada.
# All rights reserved.
#
# This source code is licensed under the license found in the
# LICENSE file in the root directory of this source tree.
#

import os
from setuptools import setup
from setuptools import find_packages


with open(os.path.join(os.path.dirname(__file__), 'advdemo/VERSION')) as f:
    version = f.read().strip()


setup(name='advdemo',
      version=version,
      description='Adversarial example attacks (FGSM, BIM, JSMA, CW) '
                  'against image classifiers',
      package_data={'advdemo': ['VERSION']},
      include_package_data=True,
      install_requires=['torch', 'numpy'],
      extras_require={'test': ['pytest']},
      packages=find_packages(exclude=('tests', 'tests.*')))

#
# Copyright (C) 2017-2024 University of Oxford
#
# This file is part of demecoal.
#
# demecoal is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# demecoal is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with demecoal.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Exceptions defined in demecoal.
"""


class DemecoalException(Exception):
    """
    Superclass of all exceptions thrown.
    """


class InvalidSizeError(DemecoalException, ValueError):
    """
    A number of lineages was zero or negative where at least one is required.
    """


class InvalidPartitionError(DemecoalException, ValueError):
    """
    A merge configuration is impossible for the number of lineages, e.g.
    more ancestors than children were requested.
    """


class NotFoundError(DemecoalException, KeyError):
    """
    No distribution has been registered in a transition kernel for the
    requested origin.
    """


class DemographyInconsistencyError(DemecoalException):
    """
    The demographic history contradicts the current state of the lineages.
    """

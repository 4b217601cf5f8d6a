#
# Copyright (C) 2015-2024 University of Oxford
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
Entry point for running demecoal as a module.
"""
from demecoal import cli

if __name__ == "__main__":
    cli.demecoal_main()

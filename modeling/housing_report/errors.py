#! /usr/bin/env python3
#
# SPDX-License-Identifier: GPL-3.0-or-later
#

'''
Errors

Exceptions raised by the report when the data or the static tables can't be
trusted. None of them is handled inside the library, they stop the run.
'''


class AnalysisError(Exception):
    '''Base class for every error raised by the report.'''


class StaleReferenceError(AnalysisError):
    '''
    An id of the correction or removal table is not in the loaded data.

    :param str table: name of the table with the stale ids
    :param list ids: ids that were not found
    '''
    def __init__(self, table:str, ids:list):
        self.table = table
        self.ids = sorted(ids)
        super().__init__(
            f'{len(self.ids)} id(s) of the {table} table not found in the '
            f'data: {self.ids}'
        )


class AmbiguityError(AnalysisError):
    '''A rule has more than one possible outcome and needs manual resolution.'''


class RegionOverlapError(AmbiguityError):
    def __init__(self, zipcodes:list):
        self.zipcodes = sorted(zipcodes)
        super().__init__(
            f'zipcodes listed both as City and Suburb: {self.zipcodes}'
        )


class AmbiguousSelectionError(AmbiguityError):
    '''
    Adjusted R², Cp and BIC chose different predictor subsets.

    The three subsets are kept in `by_adjr2`, `by_cp` and `by_bic`.
    '''
    def __init__(self, by_adjr2:tuple, by_cp:tuple, by_bic:tuple):
        self.by_adjr2 = by_adjr2
        self.by_cp = by_cp
        self.by_bic = by_bic
        super().__init__(
            'selection criteria disagree, choose the predictors manually:\n'
            f'  adjusted R²: {list(by_adjr2)}\n'
            f'  Cp:          {list(by_cp)}\n'
            f'  BIC:         {list(by_bic)}'
        )


class PreconditionError(AnalysisError, ValueError):
    '''
    Records break a domain invariant.

    :param str reason: invariant that failed
    :param list ids: offending record ids
    '''
    def __init__(self, reason:str, ids:list=None):
        self.reason = reason
        self.ids = list(ids) if ids is not None else []
        shown = self.ids[:10]
        more = f' (+{len(self.ids) - 10} more)' if len(self.ids) > 10 else ''
        msg = reason if not self.ids else f'{reason}: ids {shown}{more}'
        super().__init__(msg)

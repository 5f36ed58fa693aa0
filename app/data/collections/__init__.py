"""
Collection models package

Main components:
- CollectionRequest: a resident's pickup request and its lifecycle state
- LocalitySchedule: locality -> organic collection weekday
- PointsConfiguration: award formula parameters, at most one active
- CollectionRecord: immutable measurement captured on completion
- PointsLedgerEntry: append-only signed point movements
- CollectionCompany: company performing pickups
"""

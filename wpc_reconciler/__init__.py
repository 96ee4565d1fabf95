"""
WPC Reconciler - KPI tracker reconciliation for worst-performing-cell tickets.

Fills KPI D-1 in the WPC export from the NEW SFXL metrics workbook and
derives each ticket's Status, TAGGING and MOCN DATE from the MOCN site list
and the tagging workbook.

To run end to end:
    Call pipeline.reconcile(wpc, sfxl, sitelist, tagging, out=...) or use
    main.py from the command line.

To connect to Streamlit:
    dashboard.get_status_summary(result.records) and
    dashboard.get_run_overview(result.stats) return DataFrames/dicts ready
    for tables, cards and Plotly charts (see app.py).

To track a new metric:
    Add an entry to config.METRIC_REGISTRY and a member to models.Metric,
    then give it a rule in kpis.is_normalized.
"""
